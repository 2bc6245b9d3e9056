"""
Core playback and media-access logic.

This package is framework-agnostic - it doesn't import FastAPI, Snowflake,
boto3 or any infrastructure concerns. Collaborators (media elements, the
platform's fullscreen/PiP surface, URL signers) are described as protocols
so the logic can be tested in isolation.
"""

"""
ClipStream - a video-sharing backend and playback core.

This package contains the complete application:
- core: Framework-agnostic playback, media access and catalog logic
- infrastructure: External service integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"

"""
ClipStream configuration.

Settings come from the environment (or a .env file). Mock modes let the
API run without Snowflake or R2 credentials.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]

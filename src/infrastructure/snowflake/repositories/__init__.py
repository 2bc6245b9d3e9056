"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .channels import ChannelRepository
from .reactions import ReactionRepository
from .videos import SnowflakeConfig, SnowflakeConnection, VideoRepository

__all__ = [
    "ChannelRepository",
    "ReactionRepository",
    "SnowflakeConfig",
    "SnowflakeConnection",
    "VideoRepository",
]

"""
Video catalog domain: channels, videos, privacy and reactions.
"""

from .models import (
    Channel,
    ChannelConflictError,
    ChannelNotFoundError,
    Privacy,
    ReactionCounts,
    Video,
    VideoNotFoundError,
    normalize_handle,
    parse_tags,
)

__all__ = [
    "Channel",
    "ChannelConflictError",
    "ChannelNotFoundError",
    "Privacy",
    "ReactionCounts",
    "Video",
    "VideoNotFoundError",
    "normalize_handle",
    "parse_tags",
]

"""
YouTube Data API integration for third-party search results.
"""

from .client import (
    YouTubeAPIError,
    YouTubeClientError,
    YouTubeConfig,
    YouTubeNotConfiguredError,
    YouTubeSearchClient,
    YouTubeVideo,
    create_youtube_client,
)

__all__ = [
    "YouTubeAPIError",
    "YouTubeClientError",
    "YouTubeConfig",
    "YouTubeNotConfiguredError",
    "YouTubeSearchClient",
    "YouTubeVideo",
    "create_youtube_client",
]

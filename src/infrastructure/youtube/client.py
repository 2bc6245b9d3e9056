"""
YouTube Data API search client.

Backs the public search proxy: the API key stays on the server and the
browser only ever sees results already shaped like our own video cards.

The search endpoint returns snippets only, so view counts are unknown and
reported as 0.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class YouTubeClientError(Exception):
    """Base class for YouTube client failures."""
    pass


class YouTubeNotConfiguredError(YouTubeClientError):
    """Raised when no API key is available."""
    pass


class YouTubeAPIError(YouTubeClientError):
    """Raised when the upstream API answers with a non-success status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"YouTube API returned {status_code}")
        self.status_code = status_code
        self.body = body


@dataclass
class YouTubeConfig:
    """Configuration for the YouTube search client."""
    api_key: str
    base_url: str = "https://www.googleapis.com/youtube/v3"
    timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        if not self.api_key:
            raise YouTubeNotConfiguredError("YouTube API key not configured")


class YouTubeVideo(BaseModel):
    """A search hit in the same shape as a ClipStream video card."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    thumbnail_url: Optional[str] = None
    channel_name: str
    created_at: str
    view_count: int = 0
    is_youtube_video: bool = Field(default=True, alias="isYouTubeVideo")

    @classmethod
    def from_search_item(cls, item: dict[str, Any]) -> "YouTubeVideo":
        snippet = item.get("snippet", {})
        thumbnails = snippet.get("thumbnails", {})
        thumbnail = thumbnails.get("high") or thumbnails.get("default") or {}

        return cls(
            id=item["id"]["videoId"],
            title=snippet.get("title", ""),
            thumbnail_url=thumbnail.get("url"),
            channel_name=snippet.get("channelTitle", ""),
            created_at=snippet.get("publishedAt", ""),
        )

    def to_card(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class YouTubeSearchClient:
    """
    Thin async wrapper over the search endpoint.

    Accepts an existing httpx.AsyncClient so tests can inject a
    MockTransport and the app can share one connection pool.
    """

    def __init__(
        self,
        config: YouTubeConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout_seconds)
        self._owns_http = http_client is None

    async def search(self, query: str, max_results: int = 24) -> list[YouTubeVideo]:
        """
        Search public videos, most viewed first.

        Raises:
            YouTubeAPIError: upstream answered with a non-2xx status
            httpx.HTTPError: the request could not be completed
        """
        params = {
            "part": "snippet",
            "type": "video",
            "maxResults": str(max_results),
            "q": query,
            "order": "viewCount",
            "key": self._config.api_key,
        }

        logger.info(
            "Fetching YouTube videos",
            extra={"query": query, "max_results": max_results}
        )

        response = await self._http.get(f"{self._config.base_url}/search", params=params)

        if response.is_error:
            logger.error(
                "YouTube API error",
                extra={"status": response.status_code, "body": response.text[:500]}
            )
            raise YouTubeAPIError(response.status_code, response.text)

        items = response.json().get("items", [])
        videos = [
            YouTubeVideo.from_search_item(item)
            for item in items
            if item.get("id", {}).get("videoId")
        ]

        logger.info(
            "Fetched videos from YouTube",
            extra={"query": query, "count": len(videos)}
        )

        return videos

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_youtube_client(
    api_key: str,
    base_url: str = "https://www.googleapis.com/youtube/v3",
    timeout_seconds: float = 10.0,
    http_client: Optional[httpx.AsyncClient] = None,
) -> YouTubeSearchClient:
    """
    Build a search client, failing with YouTubeNotConfiguredError when
    there is no API key.
    """
    config = YouTubeConfig(
        api_key=api_key,
        base_url=base_url.rstrip("/"),
        timeout_seconds=timeout_seconds,
    )
    return YouTubeSearchClient(config, http_client=http_client)

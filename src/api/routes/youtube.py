"""
YouTube search proxy.

Lets the browser show third-party search results on the Home page without
ever seeing the API key. Responses are shaped like our own video cards.

This endpoint is public and called cross-origin, so every response
(including errors and the preflight) carries permissive CORS headers, and
errors use a flat {"error": "..."} body rather than FastAPI's "detail".
"""

import logging

from fastapi import APIRouter, Query, Response, status
from fastapi.responses import JSONResponse

from ...infrastructure.youtube.client import YouTubeAPIError
from ..dependencies import SettingsDep, YouTubeClientDep

logger = logging.getLogger(__name__)

router = APIRouter()


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

NOT_CONFIGURED_MESSAGE = "YouTube API key not configured"
UPSTREAM_FAILURE_MESSAGE = "Failed to fetch from YouTube API"
INVALID_MAX_RESULTS_MESSAGE = "maxResults must be a whole number"

MAX_RESULTS_LIMIT = 50


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message},
        headers=CORS_HEADERS,
    )


def parse_max_results(raw: str | None, default: int) -> int:
    """
    Read the maxResults query parameter.

    Parsed here rather than by FastAPI so a bad value still gets the
    {"error"} body and CORS headers. Blank means the default; numbers
    outside 1-50 are clamped to the YouTube API's range.

    Raises:
        ValueError: If the value is not a whole number
    """
    if raw is None or not raw.strip():
        return default
    return min(max(int(raw.strip()), 1), MAX_RESULTS_LIMIT)


@router.options("", include_in_schema=False)
async def preflight() -> Response:
    """CORS preflight: no body, just the headers."""
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)


@router.api_route(
    "",
    methods=["GET", "POST"],
    summary="Search YouTube",
    description="Search YouTube videos and return them in video card format",
)
async def fetch_youtube_videos(
    settings: SettingsDep,
    client: YouTubeClientDep,
    query: str | None = Query(default=None, description="Search term"),
    max_results: str | None = Query(
        default=None,
        alias="maxResults",
        description="Number of results; clamped to 1-50",
    ),
) -> JSONResponse:
    if client is None:
        logger.error(NOT_CONFIGURED_MESSAGE)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, NOT_CONFIGURED_MESSAGE)

    try:
        limit = parse_max_results(max_results, settings.youtube_default_max_results)
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, INVALID_MAX_RESULTS_MESSAGE)

    query = query or settings.youtube_default_query

    try:
        videos = await client.search(query, limit)

    except YouTubeAPIError as e:
        return _error(e.status_code, UPSTREAM_FAILURE_MESSAGE)

    except Exception as e:
        logger.error(
            "Error fetching YouTube videos",
            extra={"query": query, "error": str(e)}
        )
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or "Unknown error")

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"videos": [video.to_card() for video in videos]},
        headers=CORS_HEADERS,
    )

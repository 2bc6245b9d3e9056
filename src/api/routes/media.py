"""
Signed media URL endpoints.

Hands out short-lived URLs for a video's object and its thumbnail.
Callers name a catalog video, never a raw storage path, so the same
visibility rule as the Watch page decides who may sign what. A side that
cannot be signed comes back as null rather than failing the request, so
clients can fall back to a placeholder.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.catalog.models import Privacy, Video, VideoNotFoundError
from ...core.playback.models import SignedAccessGrant, ViewerSession
from ..dependencies import AuthenticatedUser, OptionalViewer, ResolverDep, VideoRepositoryDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class SignedUrlResponse(BaseModel):
    url: str = Field(description="Time-limited URL for the object")
    expires_at: datetime = Field(description="When the URL stops working (UTC)")

    @classmethod
    def from_grant(cls, grant: Optional[SignedAccessGrant]) -> Optional["SignedUrlResponse"]:
        if grant is None:
            return None
        return cls(url=grant.url, expires_at=grant.expires_at)


class MediaUrlsResponse(BaseModel):
    video: Optional[SignedUrlResponse] = Field(None, description="Signed video URL")
    thumbnail: Optional[SignedUrlResponse] = Field(None, description="Signed thumbnail URL")


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def load_visible_video(repository, video_id: UUID, viewer: Optional[ViewerSession]) -> Video:
    """
    Fetch a video the viewer is allowed to see.

    Other people's private uploads are reported as 404, the same as a
    missing video, so their IDs can't be discovered.
    """
    try:
        video = repository.get_video(video_id)
    except VideoNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Video {video_id} not found",
        )

    if video.privacy is Privacy.PRIVATE and (viewer is None or viewer.user_id != video.owner_id):
        logger.info(
            "Hid private video from non-owner",
            extra={"video_id": str(video_id), "user_id": viewer.user_id if viewer else None}
        )
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Video {video_id} not found",
        )

    return video


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/{video_id}/urls",
    response_model=MediaUrlsResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign media URLs",
    description="Resolve signed URLs for a video's object and its thumbnail in one call",
    responses={404: {"description": "Video not found"}},
)
async def get_media_urls(
    video_id: UUID,
    api_key: AuthenticatedUser,
    viewer: OptionalViewer,
    repository: VideoRepositoryDep,
    resolver: ResolverDep,
) -> MediaUrlsResponse:
    video = load_visible_video(repository, video_id, viewer)

    video_grant, thumbnail_grant = await resolver.resolve_pair(video.video_path, video.thumbnail_path)

    return MediaUrlsResponse(
        video=SignedUrlResponse.from_grant(video_grant),
        thumbnail=SignedUrlResponse.from_grant(thumbnail_grant),
    )

"""
Video catalog endpoints.

These back the Home, Search, Watch and Upload pages:
1. Home lists the newest public videos
2. Search matches public titles
3. Watch loads one video with signed URLs, reactions and related videos,
   and records a view for signed-in viewers
4. Upload stores the media objects privately and creates the catalog row

Rows only hold storage paths. Every response that needs something
playable signs it on the way out, and a signing failure degrades to a
null URL instead of an error.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, HTTPException, Query, Response, UploadFile, status
from pydantic import BaseModel, Field

from ...core.catalog.models import Privacy, Video, parse_tags
from ...core.playback.models import MediaBucket
from ...infrastructure.storage.client import StorageError, build_object_path, guess_content_type
from ..dependencies import (
    AuthenticatedUser,
    ChannelRepositoryDep,
    OptionalViewer,
    ReactionRepositoryDep,
    RequiredViewer,
    ResolverDep,
    SettingsDep,
    StorageClientDep,
    VideoRepositoryDep,
)
from .channels import ChannelSummary
from .media import SignedUrlResponse, load_visible_video

logger = logging.getLogger(__name__)

router = APIRouter()

RELATED_VIDEOS_LIMIT = 10


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class VideoSummary(BaseModel):
    """What a video card needs."""
    id: UUID
    title: str
    owner_id: str
    channel: Optional[ChannelSummary] = Field(None, description="Uploader's channel, null if unknown")
    thumbnail: Optional[SignedUrlResponse] = Field(None, description="Signed thumbnail URL, null if unavailable")
    view_count: int
    created_at: datetime


class VideoListResponse(BaseModel):
    videos: list[VideoSummary]
    total: int


class VideoDetailResponse(BaseModel):
    """Everything the Watch page renders."""
    id: UUID
    title: str
    description: str
    owner_id: str
    channel: Optional[ChannelSummary] = None
    privacy: Privacy
    tags: list[str] = Field(default_factory=list)
    view_count: int
    published_at: Optional[datetime] = Field(None, description="Set when the video went public")
    created_at: datetime
    video: Optional[SignedUrlResponse] = Field(None, description="Signed video URL, null if unavailable")
    thumbnail: Optional[SignedUrlResponse] = Field(None, description="Signed thumbnail URL, null if unavailable")
    like_count: int
    dislike_count: int
    viewer_reaction: Optional[bool] = Field(None, description="True liked, False disliked, null neither")
    related: list[VideoSummary] = Field(default_factory=list)


class ReactionRequest(BaseModel):
    is_like: bool = Field(description="True to like, False to dislike")


class ReactionResponse(BaseModel):
    reaction: Optional[bool] = Field(description="The viewer's reaction after this request")
    like_count: int
    dislike_count: int


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

async def _summaries(videos: list[Video], resolver, channels) -> list[VideoSummary]:
    """Build cards, signing all thumbnails concurrently."""
    grants = await asyncio.gather(*(
        resolver.resolve(MediaBucket.THUMBNAILS, video.thumbnail_path)
        for video in videos
    ))
    bylines = channels.get_many(video.channel_id for video in videos if video.channel_id)

    return [
        VideoSummary(
            id=video.id,
            title=video.title,
            owner_id=video.owner_id,
            channel=ChannelSummary.from_channel(bylines.get(video.channel_id)),
            thumbnail=SignedUrlResponse.from_grant(grant),
            view_count=video.view_count,
            created_at=video.created_at,
        )
        for video, grant in zip(videos, grants)
    ]


async def _read_upload(upload: UploadFile, expected_kind: str, max_bytes: int) -> bytes:
    content_type = upload.content_type or guess_content_type(upload.filename or "")
    if not content_type.startswith(f"{expected_kind}/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Expected a {expected_kind} file, got {content_type}",
        )

    data = await upload.read()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Empty {expected_kind} file",
        )
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {max_bytes // (1024 * 1024)} MB limit",
        )
    return data


async def _discard_objects(storage, video: Video) -> None:
    """Remove objects stored for an upload whose catalog row was never written."""
    for ref in (video.video_ref, video.thumbnail_ref):
        if not ref.is_present:
            continue
        try:
            await storage.delete_object(ref.bucket, ref.path)
        except StorageError as e:
            logger.warning(
                "Could not remove orphaned upload",
                extra={"bucket": ref.bucket.value, "path": ref.path, "error": str(e)}
            )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=VideoListResponse,
    summary="List public videos",
    description="Newest public videos for the Home page",
)
async def list_videos(
    api_key: AuthenticatedUser,
    repository: VideoRepositoryDep,
    channels: ChannelRepositoryDep,
    resolver: ResolverDep,
    limit: int = Query(24, ge=1, le=50),
) -> VideoListResponse:
    videos = repository.list_public(limit=limit)
    summaries = await _summaries(videos, resolver, channels)
    return VideoListResponse(videos=summaries, total=len(summaries))


@router.get(
    "/search",
    response_model=VideoListResponse,
    summary="Search videos",
    description="Case-insensitive title search over public videos",
)
async def search_videos(
    api_key: AuthenticatedUser,
    repository: VideoRepositoryDep,
    channels: ChannelRepositoryDep,
    resolver: ResolverDep,
    q: str = Query(..., min_length=1, description="Search term"),
    limit: int = Query(24, ge=1, le=50),
) -> VideoListResponse:
    logger.info("Searching videos", extra={"query": q})

    videos = repository.search(q, limit=limit)
    summaries = await _summaries(videos, resolver, channels)
    return VideoListResponse(videos=summaries, total=len(summaries))


@router.get(
    "/{video_id}",
    response_model=VideoDetailResponse,
    summary="Get video",
    description="Video detail with signed media URLs, reactions and related videos",
    responses={404: {"description": "Video not found"}},
)
async def get_video(
    video_id: UUID,
    api_key: AuthenticatedUser,
    viewer: OptionalViewer,
    repository: VideoRepositoryDep,
    channels: ChannelRepositoryDep,
    reactions: ReactionRepositoryDep,
    resolver: ResolverDep,
) -> VideoDetailResponse:
    video = load_visible_video(repository, video_id, viewer)

    (video_grant, thumbnail_grant), related = await asyncio.gather(
        resolver.resolve_pair(video.video_path, video.thumbnail_path),
        _summaries(
            repository.list_public(limit=RELATED_VIDEOS_LIMIT, exclude_id=video.id),
            resolver,
            channels,
        ),
    )

    channel = channels.get_many([video.channel_id]).get(video.channel_id) if video.channel_id else None
    counts = reactions.counts(video.id)
    viewer_reaction = reactions.get_reaction(video.id, viewer.user_id) if viewer else None

    return VideoDetailResponse(
        id=video.id,
        title=video.title,
        description=video.description,
        owner_id=video.owner_id,
        channel=ChannelSummary.from_channel(channel),
        privacy=video.privacy,
        tags=video.tags,
        view_count=video.view_count,
        published_at=video.published_at,
        created_at=video.created_at,
        video=SignedUrlResponse.from_grant(video_grant),
        thumbnail=SignedUrlResponse.from_grant(thumbnail_grant),
        like_count=counts.likes,
        dislike_count=counts.dislikes,
        viewer_reaction=viewer_reaction,
        related=related,
    )


@router.post(
    "",
    response_model=VideoDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload video",
    description=(
        "Store a video (and optional thumbnail) privately and add it to the "
        "uploader's channel. A thumbnail that fails to store is dropped, "
        "not fatal."
    ),
    responses={409: {"description": "Uploader has no channel yet"}},
)
async def upload_video(
    api_key: AuthenticatedUser,
    viewer: RequiredViewer,
    settings: SettingsDep,
    storage: StorageClientDep,
    repository: VideoRepositoryDep,
    channels: ChannelRepositoryDep,
    resolver: ResolverDep,
    title: str = Form(..., min_length=1, max_length=200),
    description: str = Form(""),
    privacy: Privacy = Form(Privacy.PUBLIC),
    tags: str = Form("", description="Comma-separated tags"),
    video: UploadFile = File(..., description="Video file"),
    thumbnail: Optional[UploadFile] = File(None, description="Thumbnail image"),
) -> VideoDetailResponse:
    # Everything that can be rejected is checked before storage is touched
    if not title.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Title cannot be blank",
        )

    video_data = await _read_upload(video, "video", settings.max_upload_size_bytes)
    thumbnail_data = None
    if thumbnail is not None and thumbnail.filename:
        thumbnail_data = await _read_upload(thumbnail, "image", settings.max_upload_size_bytes)

    channel = channels.get_by_owner(viewer.user_id)
    if channel is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Create a channel before uploading videos",
        )

    now = datetime.now(timezone.utc)
    new_video = Video(
        owner_id=viewer.user_id,
        channel_id=channel.id,
        title=title.strip(),
        description=description.strip(),
        video_path=build_object_path(viewer.user_id, video.filename or "video.mp4"),
        privacy=privacy,
        tags=parse_tags(tags),
        published_at=now if privacy is Privacy.PUBLIC else None,
        created_at=now,
    )

    try:
        await storage.upload_object(
            MediaBucket.VIDEOS,
            new_video.video_path,
            video_data,
            video.content_type or guess_content_type(new_video.video_path),
        )
    except StorageError as e:
        logger.error(
            "Upload failed",
            extra={"user_id": viewer.user_id, "error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store upload",
        )

    if thumbnail_data is not None:
        thumbnail_path = build_object_path(viewer.user_id, thumbnail.filename)
        try:
            await storage.upload_object(
                MediaBucket.THUMBNAILS,
                thumbnail_path,
                thumbnail_data,
                thumbnail.content_type or guess_content_type(thumbnail_path),
            )
            new_video.thumbnail_path = thumbnail_path
        except StorageError as e:
            logger.warning(
                "Thumbnail upload failed, continuing without one",
                extra={"user_id": viewer.user_id, "error": str(e)}
            )

    try:
        created = repository.create_video(new_video)
    except Exception as e:
        logger.error(
            "Failed to save uploaded video",
            extra={"user_id": viewer.user_id, "video_id": str(new_video.id), "error": str(e)}
        )
        await _discard_objects(storage, new_video)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save video",
        )

    video_grant, thumbnail_grant = await resolver.resolve_pair(created.video_path, created.thumbnail_path)

    logger.info(
        "Video uploaded",
        extra={
            "video_id": str(created.id),
            "channel_id": str(channel.id),
            "user_id": viewer.user_id,
            "size_bytes": len(video_data),
        }
    )

    return VideoDetailResponse(
        id=created.id,
        title=created.title,
        description=created.description,
        owner_id=created.owner_id,
        channel=ChannelSummary.from_channel(channel),
        privacy=created.privacy,
        tags=created.tags,
        view_count=created.view_count,
        published_at=created.published_at,
        created_at=created.created_at,
        video=SignedUrlResponse.from_grant(video_grant),
        thumbnail=SignedUrlResponse.from_grant(thumbnail_grant),
        like_count=0,
        dislike_count=0,
    )


@router.post(
    "/{video_id}/views",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Record a view",
    description="Count a view and add it to the viewer's watch history",
    responses={404: {"description": "Video not found"}},
)
async def record_view(
    video_id: UUID,
    api_key: AuthenticatedUser,
    viewer: RequiredViewer,
    repository: VideoRepositoryDep,
) -> Response:
    video = load_visible_video(repository, video_id, viewer)

    if not repository.record_view(video.id, viewer):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Video {video_id} not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{video_id}/reaction",
    response_model=ReactionResponse,
    summary="Like or dislike",
    description="Repeat the same reaction to remove it; send the other to switch",
    responses={404: {"description": "Video not found"}},
)
async def set_reaction(
    video_id: UUID,
    request: ReactionRequest,
    api_key: AuthenticatedUser,
    viewer: RequiredViewer,
    repository: VideoRepositoryDep,
    reactions: ReactionRepositoryDep,
) -> ReactionResponse:
    video = load_visible_video(repository, video_id, viewer)

    reaction = reactions.set_reaction(video.id, viewer, request.is_like)
    counts = reactions.counts(video.id)

    return ReactionResponse(
        reaction=reaction,
        like_count=counts.likes,
        dislike_count=counts.dislikes,
    )

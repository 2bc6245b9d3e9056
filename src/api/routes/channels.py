"""
Channel endpoints.

A signed-in user creates one channel before they can upload. Video cards
and the Watch page show the channel's name and avatar.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.catalog.models import (
    Channel,
    ChannelConflictError,
    ChannelNotFoundError,
    normalize_handle,
)
from ..dependencies import AuthenticatedUser, ChannelRepositoryDep, RequiredViewer

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class CreateChannelRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    handle: str = Field(..., min_length=1, max_length=51, description="With or without the leading @")
    description: str = Field("", max_length=5000)
    avatar_url: Optional[str] = Field(None, description="Avatar image URL")


class ChannelResponse(BaseModel):
    id: UUID
    owner_id: str
    name: str
    handle: str
    description: str
    avatar_url: Optional[str]
    subscriber_count: int
    created_at: datetime

    @classmethod
    def from_channel(cls, channel: Channel) -> "ChannelResponse":
        return cls(
            id=channel.id,
            owner_id=channel.owner_id,
            name=channel.name,
            handle=channel.handle,
            description=channel.description,
            avatar_url=channel.avatar_url,
            subscriber_count=channel.subscriber_count,
            created_at=channel.created_at,
        )


class ChannelSummary(BaseModel):
    """The channel byline shown on video cards and the Watch page."""
    id: UUID
    name: str
    avatar_url: Optional[str] = None
    subscriber_count: int = 0

    @classmethod
    def from_channel(cls, channel: Optional[Channel]) -> Optional["ChannelSummary"]:
        if channel is None:
            return None
        return cls(
            id=channel.id,
            name=channel.name,
            avatar_url=channel.avatar_url,
            subscriber_count=channel.subscriber_count,
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ChannelResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create channel",
    description="Create the signed-in user's channel. Each user has at most one.",
    responses={409: {"description": "User already has a channel, or handle taken"}},
)
async def create_channel(
    request: CreateChannelRequest,
    api_key: AuthenticatedUser,
    viewer: RequiredViewer,
    channels: ChannelRepositoryDep,
) -> ChannelResponse:
    try:
        handle = normalize_handle(request.handle)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )

    if not request.name.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Channel name cannot be blank",
        )

    channel = Channel(
        owner_id=viewer.user_id,
        name=request.name.strip(),
        handle=handle,
        description=request.description.strip(),
        avatar_url=request.avatar_url,
    )

    try:
        channels.create_channel(channel)
    except ChannelConflictError as e:
        logger.info(
            "Channel creation refused",
            extra={"user_id": viewer.user_id, "handle": handle, "reason": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )

    return ChannelResponse.from_channel(channel)


@router.get(
    "/me",
    response_model=ChannelResponse,
    summary="Get my channel",
    description="The signed-in user's channel; 404 until they create one",
    responses={404: {"description": "No channel yet"}},
)
async def get_my_channel(
    api_key: AuthenticatedUser,
    viewer: RequiredViewer,
    channels: ChannelRepositoryDep,
) -> ChannelResponse:
    channel = channels.get_by_owner(viewer.user_id)
    if channel is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="You don't have a channel yet",
        )
    return ChannelResponse.from_channel(channel)


@router.get(
    "/{channel_id}",
    response_model=ChannelResponse,
    summary="Get channel",
    responses={404: {"description": "Channel not found"}},
)
async def get_channel(
    channel_id: UUID,
    api_key: AuthenticatedUser,
    channels: ChannelRepositoryDep,
) -> ChannelResponse:
    try:
        channel = channels.get_channel(channel_id)
    except ChannelNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Channel {channel_id} not found",
        )
    return ChannelResponse.from_channel(channel)

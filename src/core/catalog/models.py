"""
Domain models for the video catalog.

A Video row stores object *paths*, never URLs: playable URLs are signed
on demand by the resolver and expire.

Every upload belongs to a Channel, and a user owns at most one channel.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from ..playback.models import MediaBucket, MediaResourceRef


HANDLE_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,50}$")


class Privacy(Enum):
    PUBLIC = "public"
    UNLISTED = "unlisted"
    PRIVATE = "private"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_handle(handle: str) -> str:
    """
    Canonical "@name" form of a channel handle.

    Accepts the handle with or without its leading "@".

    Raises:
        ValueError: If the handle is empty or has characters other than
            letters, digits, "_", "." and "-"
    """
    bare = handle.strip().lstrip("@")
    if not HANDLE_PATTERN.match(bare):
        raise ValueError(f"Invalid channel handle: {handle!r}")
    return f"@{bare}"


def parse_tags(raw: str) -> list[str]:
    """Split a comma-separated tag field, dropping blanks and repeats."""
    tags: list[str] = []
    for tag in raw.split(","):
        tag = tag.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


@dataclass
class Channel:
    """A user's public identity on the site."""
    owner_id: str
    name: str
    handle: str
    id: UUID = field(default_factory=uuid4)
    description: str = ""
    avatar_url: Optional[str] = None
    subscriber_count: int = 0
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Channel name cannot be empty")
        if self.subscriber_count < 0:
            raise ValueError("subscriber_count cannot be negative")
        self.handle = normalize_handle(self.handle)


@dataclass
class Video:
    """An uploaded video and its catalog metadata."""
    owner_id: str
    title: str
    video_path: str
    id: UUID = field(default_factory=uuid4)
    channel_id: Optional[UUID] = None
    description: str = ""
    thumbnail_path: Optional[str] = None
    privacy: Privacy = Privacy.PUBLIC
    tags: list[str] = field(default_factory=list)
    view_count: int = 0
    published_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not self.title.strip():
            raise ValueError("Video title cannot be empty")
        if not self.video_path:
            raise ValueError("Video must reference a stored object")
        if self.view_count < 0:
            raise ValueError("view_count cannot be negative")

    @property
    def video_ref(self) -> MediaResourceRef:
        return MediaResourceRef(MediaBucket.VIDEOS, self.video_path)

    @property
    def thumbnail_ref(self) -> MediaResourceRef:
        return MediaResourceRef(MediaBucket.THUMBNAILS, self.thumbnail_path)

    @property
    def is_public(self) -> bool:
        return self.privacy is Privacy.PUBLIC


@dataclass(frozen=True)
class ReactionCounts:
    likes: int = 0
    dislikes: int = 0


class VideoNotFoundError(Exception):
    """Raised when a requested video doesn't exist."""
    pass


class ChannelNotFoundError(Exception):
    """Raised when a requested channel doesn't exist."""
    pass


class ChannelConflictError(Exception):
    """Raised when a user already has a channel or the handle is taken."""
    pass

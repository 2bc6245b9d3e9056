"""
Domain models for media access and playback.

These models have no dependencies on FastAPI, storage SDKs or any media
backend. The playback state is plain data owned by exactly one
MediaTransportController; the access grant is an ephemeral value that is
recomputed for every view and never persisted.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional


DEFAULT_VIDEO_URL_TTL_SECONDS = 7200
DEFAULT_THUMBNAIL_URL_TTL_SECONDS = 86400

# Menu values for the speed selector. The setter accepts any positive rate.
PLAYBACK_RATES: tuple[float, ...] = (0.25, 0.5, 0.75, 1.0, 1.25, 1.5, 1.75, 2.0)

UNKNOWN_TIME_DISPLAY = "0:00"


class MediaBucket(Enum):
    """The storage areas media objects can live in."""
    VIDEOS = "videos"
    THUMBNAILS = "thumbnails"

    @property
    def default_ttl_seconds(self) -> int:
        if self is MediaBucket.VIDEOS:
            return DEFAULT_VIDEO_URL_TTL_SECONDS
        return DEFAULT_THUMBNAIL_URL_TTL_SECONDS


class PlaybackPhase(Enum):
    """Coarse player phase derived from PlaybackState."""
    IDLE = "idle"        # no metadata yet
    READY = "ready"      # metadata loaded, not playing
    PLAYING = "playing"
    ENDED = "ended"      # terminal for the current source until seek + play


@dataclass(frozen=True)
class MediaResourceRef:
    """
    Pointer to a stored media object.

    Written by the upload flow, read by the resolver. A missing path is
    a legitimate state (e.g. a video uploaded without a thumbnail).
    """
    bucket: MediaBucket
    path: Optional[str] = None

    @property
    def is_present(self) -> bool:
        return bool(self.path)


@dataclass(frozen=True)
class SignedAccessGrant:
    """
    A time-limited URL granting read access to a private object.

    Frozen because grants are values. Use issue() to build one from a TTL.
    """
    url: str
    expires_at: datetime

    @classmethod
    def issue(
        cls,
        url: str,
        ttl_seconds: int,
        now: Optional[datetime] = None,
    ) -> "SignedAccessGrant":
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        issued_at = now or datetime.now(timezone.utc)
        return cls(url=url, expires_at=issued_at + timedelta(seconds=ttl_seconds))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at


@dataclass(frozen=True)
class ViewerSession:
    """
    The signed-in viewer for one request.

    Passed explicitly to anything gated on authentication (recording
    views, reacting, uploading) instead of being read from a global.
    """
    user_id: str

    def __post_init__(self) -> None:
        if not self.user_id.strip():
            raise ValueError("user_id cannot be empty")


def _is_known(seconds: Optional[float]) -> bool:
    return seconds is not None and math.isfinite(seconds) and seconds >= 0


def format_time(seconds: Optional[float]) -> str:
    """Format seconds as m:ss. Unknown or invalid values render 0:00."""
    if not _is_known(seconds):
        return UNKNOWN_TIME_DISPLAY
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


def progress_fraction(current: float, duration: Optional[float]) -> float:
    """Fraction of the media played, in [0, 1]. Zero while duration is unknown."""
    if not _is_known(duration) or duration == 0 or not _is_known(current):
        return 0.0
    return min(max(current / duration, 0.0), 1.0)


@dataclass
class PlaybackState:
    """
    Everything a player surface renders.

    Owned by a single controller. Fullscreen and PiP flags mirror the
    platform and are only written from its change notifications.
    """
    current_time: float = 0.0
    duration: Optional[float] = None
    playing: bool = False
    ended: bool = False
    volume: float = 1.0
    muted: bool = False
    playback_rate: float = 1.0
    fullscreen: bool = False
    theater_mode: bool = False
    pip_active: bool = False
    controls_visible: bool = True

    def reset(self) -> None:
        """Restore the source-scoped fields after the source changes."""
        self.current_time = 0.0
        self.duration = None
        self.playing = False
        self.ended = False

    @property
    def phase(self) -> PlaybackPhase:
        if self.ended:
            return PlaybackPhase.ENDED
        if self.playing:
            return PlaybackPhase.PLAYING
        if self.duration is None:
            return PlaybackPhase.IDLE
        return PlaybackPhase.READY

    @property
    def progress(self) -> float:
        return progress_fraction(self.current_time, self.duration)

    @property
    def displays_muted(self) -> bool:
        return self.muted or self.volume == 0

    @property
    def effective_volume(self) -> float:
        return 0.0 if self.muted else self.volume

    @property
    def time_display(self) -> str:
        return f"{format_time(self.current_time)} / {format_time(self.duration)}"

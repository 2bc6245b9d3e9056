"""
Playback core: the media transport controller and the models it renders.
"""

from .controller import MediaElement, MediaTransportController, PlatformSurface
from .models import (
    PLAYBACK_RATES,
    MediaBucket,
    MediaResourceRef,
    PlaybackPhase,
    PlaybackState,
    SignedAccessGrant,
    ViewerSession,
    format_time,
    progress_fraction,
)

__all__ = [
    "PLAYBACK_RATES",
    "MediaBucket",
    "MediaElement",
    "MediaResourceRef",
    "MediaTransportController",
    "PlatformSurface",
    "PlaybackPhase",
    "PlaybackState",
    "SignedAccessGrant",
    "ViewerSession",
    "format_time",
    "progress_fraction",
]

"""
Signed URL resolution for stored media.

Video and thumbnail objects are private. Pages that want to show them ask
the resolver for a short-lived URL, which the storage service signs.

Failure policy: resolution fails soft. A missing path or a signing error
yields None so the caller can render a placeholder; nothing here raises
into page rendering. Grants are not cached: every call signs afresh and
callers decide how long to reuse a grant.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional, Protocol, Union

from ..playback.models import (
    DEFAULT_THUMBNAIL_URL_TTL_SECONDS,
    DEFAULT_VIDEO_URL_TTL_SECONDS,
    MediaBucket,
    MediaResourceRef,
    SignedAccessGrant,
)

logger = logging.getLogger(__name__)


class UrlSigner(Protocol):
    """
    Anything that can mint a time-limited read URL for a stored object.

    The resolver neither knows nor cares whether this is R2, S3 or an
    in-memory mock.
    """

    async def create_signed_url(
        self,
        bucket: MediaBucket,
        path: str,
        expires_in: int,
    ) -> str:
        ...


class SignedUrlResolver:
    """
    Turns (bucket, path) pairs into SignedAccessGrants.

    TTLs default per bucket (2 hours for videos, 24 hours for thumbnails)
    and can be overridden per instance or per call.
    """

    def __init__(
        self,
        signer: UrlSigner,
        video_ttl_seconds: int = DEFAULT_VIDEO_URL_TTL_SECONDS,
        thumbnail_ttl_seconds: int = DEFAULT_THUMBNAIL_URL_TTL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if video_ttl_seconds <= 0 or thumbnail_ttl_seconds <= 0:
            raise ValueError("TTLs must be positive")

        self._signer = signer
        self._ttls = {
            MediaBucket.VIDEOS: video_ttl_seconds,
            MediaBucket.THUMBNAILS: thumbnail_ttl_seconds,
        }
        self._clock = clock

    async def resolve(
        self,
        bucket: Union[MediaBucket, str],
        path: Optional[str],
        ttl_seconds: Optional[int] = None,
    ) -> Optional[SignedAccessGrant]:
        """
        Sign one object.

        Returns None without touching storage when there is no path, and
        None (after logging) when the storage backend refuses.
        """
        bucket = MediaBucket(bucket)
        ttl = self._ttls[bucket] if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive")

        if not path:
            return None

        try:
            url = await self._signer.create_signed_url(bucket, path, ttl)
        except Exception as e:
            logger.error(
                "Error creating signed URL",
                extra={"bucket": bucket.value, "path": path, "error": str(e)}
            )
            return None

        now = self._clock() if self._clock else None
        return SignedAccessGrant.issue(url, ttl, now=now)

    async def resolve_reference(
        self,
        ref: MediaResourceRef,
        ttl_seconds: Optional[int] = None,
    ) -> Optional[SignedAccessGrant]:
        return await self.resolve(ref.bucket, ref.path, ttl_seconds)

    async def resolve_pair(
        self,
        video_path: Optional[str],
        thumbnail_path: Optional[str],
    ) -> tuple[Optional[SignedAccessGrant], Optional[SignedAccessGrant]]:
        """
        Sign a video and its thumbnail concurrently.

        Each side fails independently: resolve() never raises for backend
        errors, so one failure cannot cancel or fail the other.
        """
        video_grant, thumbnail_grant = await asyncio.gather(
            self.resolve(MediaBucket.VIDEOS, video_path),
            self.resolve(MediaBucket.THUMBNAILS, thumbnail_path),
        )
        return video_grant, thumbnail_grant

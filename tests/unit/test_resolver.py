"""
Unit tests for the signed URL resolver.

The storage backend is replaced with a recording signer so we can see
exactly which objects were signed, with which TTL, and how often.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from src.core.media.resolver import SignedUrlResolver
from src.core.playback.models import MediaBucket, MediaResourceRef
from src.infrastructure.storage.client import MockStorageClient, StorageError


FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class RecordingSigner:
    """Signs everything except the buckets it's told to fail."""

    def __init__(self, fail_buckets=()):
        self.fail_buckets = set(fail_buckets)
        self.calls = []

    async def create_signed_url(self, bucket, path, expires_in):
        self.calls.append((bucket, path, expires_in))
        if bucket in self.fail_buckets:
            raise StorageError(f"Access denied for {bucket.value}")
        return f"https://media.example/{bucket.value}/{path}?X-Amz-Signature=abc123"


@pytest.fixture
def signer():
    return RecordingSigner()


@pytest.fixture
def resolver(signer):
    return SignedUrlResolver(signer, clock=lambda: FIXED_NOW)


# ---------------------------------------------------------------------------
# resolve()
# ---------------------------------------------------------------------------

class TestResolve:

    @pytest.mark.asyncio
    async def test_missing_path_skips_storage(self, resolver, signer):
        assert await resolver.resolve(MediaBucket.THUMBNAILS, None) is None
        assert await resolver.resolve(MediaBucket.THUMBNAILS, "") is None
        assert signer.calls == []

    @pytest.mark.asyncio
    async def test_returns_backend_url_verbatim(self, resolver):
        grant = await resolver.resolve(MediaBucket.VIDEOS, "user-1/1700000000000.mp4")

        assert grant.url == (
            "https://media.example/videos/user-1/1700000000000.mp4?X-Amz-Signature=abc123"
        )

    @pytest.mark.asyncio
    async def test_video_grant_lasts_two_hours(self, resolver, signer):
        grant = await resolver.resolve(MediaBucket.VIDEOS, "user-1/a.mp4")

        assert signer.calls == [(MediaBucket.VIDEOS, "user-1/a.mp4", 7200)]
        assert grant.expires_at == FIXED_NOW + timedelta(hours=2)

    @pytest.mark.asyncio
    async def test_thumbnail_grant_lasts_a_day(self, resolver, signer):
        grant = await resolver.resolve(MediaBucket.THUMBNAILS, "user-1/a.jpg")

        assert signer.calls[0][2] == 86400
        assert grant.expires_at == FIXED_NOW + timedelta(days=1)

    @pytest.mark.asyncio
    async def test_explicit_ttl_overrides_default(self, resolver, signer):
        await resolver.resolve(MediaBucket.VIDEOS, "user-1/a.mp4", ttl_seconds=60)

        assert signer.calls[0][2] == 60

    @pytest.mark.asyncio
    async def test_bucket_name_strings_are_accepted(self, resolver, signer):
        await resolver.resolve("thumbnails", "user-1/a.jpg")

        assert signer.calls[0][0] is MediaBucket.THUMBNAILS

    @pytest.mark.asyncio
    async def test_unknown_bucket_is_a_programming_error(self, resolver):
        with pytest.raises(ValueError):
            await resolver.resolve("avatars", "user-1/me.png")

    @pytest.mark.asyncio
    async def test_non_positive_ttl_is_rejected(self, resolver, signer):
        with pytest.raises(ValueError):
            await resolver.resolve(MediaBucket.VIDEOS, "user-1/a.mp4", ttl_seconds=0)
        assert signer.calls == []

    @pytest.mark.asyncio
    async def test_backend_failure_yields_none(self):
        resolver = SignedUrlResolver(RecordingSigner(fail_buckets=[MediaBucket.VIDEOS]))

        assert await resolver.resolve(MediaBucket.VIDEOS, "user-1/a.mp4") is None

    @pytest.mark.asyncio
    async def test_every_call_signs_again(self, resolver, signer):
        await resolver.resolve(MediaBucket.VIDEOS, "user-1/a.mp4")
        await resolver.resolve(MediaBucket.VIDEOS, "user-1/a.mp4")

        assert len(signer.calls) == 2

    @pytest.mark.asyncio
    async def test_resolve_reference(self, resolver):
        ref = MediaResourceRef(MediaBucket.THUMBNAILS, "user-1/a.jpg")

        grant = await resolver.resolve_reference(ref)

        assert grant is not None
        assert "/thumbnails/user-1/a.jpg" in grant.url

    def test_custom_ttls_must_be_positive(self, signer):
        with pytest.raises(ValueError):
            SignedUrlResolver(signer, video_ttl_seconds=0)

    @pytest.mark.asyncio
    async def test_works_against_mock_storage(self):
        storage = MockStorageClient()
        await storage.upload_object(MediaBucket.VIDEOS, "user-1/a.mp4", b"\x00\x01", "video/mp4")
        resolver = SignedUrlResolver(storage)

        present = await resolver.resolve(MediaBucket.VIDEOS, "user-1/a.mp4")
        absent = await resolver.resolve(MediaBucket.VIDEOS, "user-1/missing.mp4")

        assert present.url.startswith("mock://storage/videos/user-1/a.mp4")
        assert absent is None


# ---------------------------------------------------------------------------
# resolve_pair()
# ---------------------------------------------------------------------------

class TestResolvePair:

    @pytest.mark.asyncio
    async def test_thumbnail_failure_does_not_affect_video(self):
        resolver = SignedUrlResolver(RecordingSigner(fail_buckets=[MediaBucket.THUMBNAILS]))

        video, thumbnail = await resolver.resolve_pair("user-1/a.mp4", "user-1/a.jpg")

        assert video is not None
        assert thumbnail is None

    @pytest.mark.asyncio
    async def test_video_failure_does_not_affect_thumbnail(self):
        resolver = SignedUrlResolver(RecordingSigner(fail_buckets=[MediaBucket.VIDEOS]))

        video, thumbnail = await resolver.resolve_pair("user-1/a.mp4", "user-1/a.jpg")

        assert video is None
        assert thumbnail is not None

    @pytest.mark.asyncio
    async def test_missing_thumbnail_only_signs_video(self, resolver, signer):
        video, thumbnail = await resolver.resolve_pair("user-1/a.mp4", None)

        assert video is not None
        assert thumbnail is None
        assert [call[0] for call in signer.calls] == [MediaBucket.VIDEOS]

    @pytest.mark.asyncio
    async def test_both_requests_are_in_flight_together(self):
        """Each signing call waits for the other; sequential signing would hang."""

        class RendezvousSigner:
            def __init__(self):
                self.arrived = 0
                self.both_arrived = asyncio.Event()

            async def create_signed_url(self, bucket, path, expires_in):
                self.arrived += 1
                if self.arrived == 2:
                    self.both_arrived.set()
                await self.both_arrived.wait()
                return f"https://media.example/{bucket.value}/{path}"

        resolver = SignedUrlResolver(RendezvousSigner())

        video, thumbnail = await asyncio.wait_for(
            resolver.resolve_pair("user-1/a.mp4", "user-1/a.jpg"),
            timeout=1.0,
        )

        assert video is not None
        assert thumbnail is not None

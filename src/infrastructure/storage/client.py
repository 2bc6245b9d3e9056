"""
Object storage client for uploaded videos and thumbnails.

Supports Cloudflare R2 (S3-compatible) with mock mode for local development.
Objects are private; readers only ever get time-limited presigned URLs,
never a permanent public link.

Two logical buckets exist (see MediaBucket). StorageConfig maps each one
to a physical bucket name so environments can use their own naming.

Mock mode stores objects in memory, enabling API testing without
provisioning actual object storage.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from src.core.playback.models import MediaBucket

logger = logging.getLogger(__name__)


CONTENT_TYPES = {
    'mp4': 'video/mp4',
    'mov': 'video/quicktime',
    'webm': 'video/webm',
    'mkv': 'video/x-matroska',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'webp': 'image/webp',
}


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """Configuration for R2/S3-compatible storage."""
    access_key_id: str
    secret_access_key: str
    endpoint_url: str
    videos_bucket: str = "clipstream-videos"
    thumbnails_bucket: str = "clipstream-thumbnails"
    region: str = "auto"  # R2 uses 'auto' for region

    def bucket_name(self, bucket: MediaBucket) -> str:
        if bucket is MediaBucket.VIDEOS:
            return self.videos_bucket
        return self.thumbnails_bucket


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Using a protocol means tests can provide mocks and we can
    swap storage backends without changing dependent code.
    """

    async def upload_object(
        self,
        bucket: MediaBucket,
        path: str,
        data: bytes,
        content_type: str,
    ) -> str:
        """Store an object and return its path."""
        ...

    async def create_signed_url(
        self,
        bucket: MediaBucket,
        path: str,
        expires_in: int,
    ) -> str:
        """Mint a URL granting read access for expires_in seconds."""
        ...

    async def delete_object(self, bucket: MediaBucket, path: str) -> None:
        """Remove an object. Deleting a missing object is not an error."""
        ...


def build_object_path(owner_id: str, filename: str, now_ms: Optional[int] = None) -> str:
    """
    Build the storage path for an upload: {owner_id}/{epoch_ms}.{ext}

    Prefixing with the owner keeps each user's uploads together and makes
    per-user storage policies simple to express.
    """
    ext = filename.rsplit('.', 1)[-1].lower() if '.' in filename else 'bin'
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{owner_id}/{stamp}.{ext}"


def guess_content_type(path: str, fallback: str = 'application/octet-stream') -> str:
    ext = path.rsplit('.', 1)[-1].lower() if '.' in path else ''
    return CONTENT_TYPES.get(ext, fallback)


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible, so the same client works
    against S3 or MinIO with a different endpoint.

    Methods are async to match the Protocol even though boto3 is
    synchronous. Presigning is a local computation and does not block
    on the network.
    """

    def __init__(self, config: StorageConfig) -> None:
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for R2 storage. Install with: pip install boto3"
            )

        self._config = config

        # R2 requires v4 signatures and path-style addressing
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )

        self._s3_client = boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized R2 storage client",
            extra={
                "videos_bucket": config.videos_bucket,
                "thumbnails_bucket": config.thumbnails_bucket,
                "endpoint": config.endpoint_url,
            }
        )

    async def upload_object(
        self,
        bucket: MediaBucket,
        path: str,
        data: bytes,
        content_type: str,
    ) -> str:
        bucket_name = self._config.bucket_name(bucket)

        try:
            self._s3_client.put_object(
                Bucket=bucket_name,
                Key=path,
                Body=data,
                ContentType=content_type,
            )

            logger.info(
                "Uploaded object",
                extra={
                    "bucket": bucket.value,
                    "path": path,
                    "size_bytes": len(data),
                }
            )

            return path

        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"bucket": bucket.value, "path": path, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}")

    async def create_signed_url(
        self,
        bucket: MediaBucket,
        path: str,
        expires_in: int,
    ) -> str:
        try:
            return self._s3_client.generate_presigned_url(
                'get_object',
                Params={
                    'Bucket': self._config.bucket_name(bucket),
                    'Key': path,
                },
                ExpiresIn=expires_in,
            )

        except Exception as e:
            logger.error(
                "Failed to generate presigned URL",
                extra={"bucket": bucket.value, "path": path, "error": str(e)}
            )
            raise StorageError(f"Presigned URL generation failed: {e}")

    async def delete_object(self, bucket: MediaBucket, path: str) -> None:
        try:
            self._s3_client.delete_object(
                Bucket=self._config.bucket_name(bucket),
                Key=path,
            )

            logger.info(
                "Deleted object",
                extra={"bucket": bucket.value, "path": path}
            )

        except Exception as e:
            logger.error(
                "Failed to delete object",
                extra={"bucket": bucket.value, "path": path, "error": str(e)}
            )
            raise StorageError(f"Delete failed: {e}")


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Objects live in a dictionary keyed by (bucket, path) and "signed"
    URLs are mock URIs. Signing an object that was never uploaded fails,
    like a real backend would for a missing key.
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[MediaBucket, str], bytes] = {}
        logger.info("Initialized mock storage client (in-memory)")

    async def upload_object(
        self,
        bucket: MediaBucket,
        path: str,
        data: bytes,
        content_type: str,
    ) -> str:
        self._objects[(bucket, path)] = data

        logger.debug(
            "Stored object in mock storage",
            extra={"bucket": bucket.value, "path": path, "size_bytes": len(data)}
        )

        return path

    async def create_signed_url(
        self,
        bucket: MediaBucket,
        path: str,
        expires_in: int,
    ) -> str:
        if (bucket, path) not in self._objects:
            raise StorageError(f"Object not found: {bucket.value}/{path}")

        return f"mock://storage/{bucket.value}/{path}?expires_in={expires_in}"

    async def delete_object(self, bucket: MediaBucket, path: str) -> None:
        self._objects.pop((bucket, path), None)

    def has_object(self, bucket: MediaBucket, path: str) -> bool:
        return (bucket, path) in self._objects

    # Helper method for testing
    def _paths(self, bucket: MediaBucket) -> list[str]:
        return [path for (b, path) in self._objects if b is bucket]


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (R2 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return R2StorageClient(config)

"""
Object storage integration for uploaded videos and thumbnails.

Supports R2 (Cloudflare) and S3 (AWS) via S3-compatible API.
Includes mock mode for local development without credentials.
"""

from .client import (
    MockStorageClient,
    R2StorageClient,
    StorageClient,
    StorageConfig,
    StorageError,
    build_object_path,
    create_storage_client,
    guess_content_type,
)

__all__ = [
    "MockStorageClient",
    "R2StorageClient",
    "StorageClient",
    "StorageConfig",
    "StorageError",
    "build_object_path",
    "create_storage_client",
    "guess_content_type",
]

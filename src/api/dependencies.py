"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be mocked for testing
- Configuration is centralized
- Resource lifecycle (connections, clients) is managed properly

The signed-in viewer is also a dependency: handlers receive an explicit
ViewerSession instead of reaching for a global auth client.
"""

import logging
from contextlib import contextmanager
from typing import Annotated, AsyncGenerator, Generator, Optional

from fastapi import Depends, Header, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.media.resolver import SignedUrlResolver
from ..core.playback.models import ViewerSession
from ..infrastructure.snowflake.client import MockSnowflakeConnection, get_snowflake_connection
from ..infrastructure.snowflake.repositories import (
    ChannelRepository,
    ReactionRepository,
    SnowflakeConfig,
    SnowflakeConnection,
    VideoRepository,
)
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client
from ..infrastructure.youtube.client import YouTubeSearchClient, create_youtube_client

logger = logging.getLogger(__name__)

# API Key security scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# Global mock instances (shared across requests for local development)
_mock_storage_client = None
_mock_snowflake_connection = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    api_key: str = Security(api_key_header),
) -> str:
    """
    Validate API key from request header.

    Raises 403 if key is invalid or missing.
    """
    if not api_key:
        logger.warning("Request missing API key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="API key required. Provide X-API-Key header.",
        )

    if api_key not in settings.api_keys_list:
        logger.warning(
            "Invalid API key attempt",
            extra={"key_prefix": api_key[:8]}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return api_key


async def get_viewer_session(
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> Optional[ViewerSession]:
    """Signed-in viewer for this request, or None for anonymous browsing."""
    if not x_user_id or not x_user_id.strip():
        return None
    return ViewerSession(user_id=x_user_id.strip())


async def require_viewer_session(
    session: Annotated[Optional[ViewerSession], Depends(get_viewer_session)],
) -> ViewerSession:
    """Like get_viewer_session, but 401 for anonymous requests."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in required. Provide X-User-Id header.",
        )
    return session


# ---------------------------------------------------------------------------
# Storage and media access
# ---------------------------------------------------------------------------

def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """
    Provide storage client for uploads and URL signing.

    In mock mode, we reuse the same client across requests
    so that uploaded objects persist during the session.
    """
    global _mock_storage_client

    if settings.r2_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(mock_mode=True)
            logger.info("Created shared mock storage client for session")
        return _mock_storage_client

    config = StorageConfig(
        access_key_id=settings.r2_access_key_id,
        secret_access_key=settings.r2_secret_access_key,
        endpoint_url=settings.r2_endpoint,
        videos_bucket=settings.r2_videos_bucket,
        thumbnails_bucket=settings.r2_thumbnails_bucket,
    )
    client = create_storage_client(config=config)
    logger.debug("Created R2 storage client")

    return client


def get_signed_url_resolver(
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
) -> SignedUrlResolver:
    return SignedUrlResolver(
        storage,
        video_ttl_seconds=settings.video_url_ttl_seconds,
        thumbnail_ttl_seconds=settings.thumbnail_url_ttl_seconds,
    )


# ---------------------------------------------------------------------------
# YouTube
# ---------------------------------------------------------------------------

async def get_youtube_client(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> AsyncGenerator[Optional[YouTubeSearchClient], None]:
    """
    Provide a YouTube search client, or None when no API key is set.

    The proxy route turns None into its own fixed error body, so this
    dependency must not raise for missing configuration. Uses the
    app-wide HTTP pool opened in the lifespan when there is one.
    """
    if not settings.youtube_api_key:
        yield None
        return

    client = create_youtube_client(
        api_key=settings.youtube_api_key,
        base_url=settings.youtube_api_base_url,
        timeout_seconds=settings.youtube_timeout_seconds,
        http_client=getattr(request.app.state, "http_client", None),
    )
    try:
        yield client
    finally:
        await client.aclose()


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

def _shared_mock_connection() -> MockSnowflakeConnection:
    global _mock_snowflake_connection

    if _mock_snowflake_connection is None:
        _mock_snowflake_connection = MockSnowflakeConnection()
        logger.info("Created shared mock Snowflake connection for session")
    return _mock_snowflake_connection


def _snowflake_config(settings: Settings) -> SnowflakeConfig:
    return SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )


@contextmanager
def open_catalog_connection(settings: Settings) -> Generator[SnowflakeConnection, None, None]:
    """
    Open a connection to the catalog database.

    In mock mode, one in-memory connection is shared so data persists
    between requests. Outside a request (the readiness check) callers
    use this directly so connection failures stay catchable.
    """
    if settings.snowflake_mock_mode:
        yield _shared_mock_connection()
        return

    with get_snowflake_connection(_snowflake_config(settings)) as conn:
        yield conn


def get_video_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[VideoRepository, None, None]:
    """
    Provide VideoRepository with database connection.

    A generator so the connection is closed after the request.
    """
    with open_catalog_connection(settings) as conn:
        yield VideoRepository(conn)


def get_reaction_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[ReactionRepository, None, None]:
    with open_catalog_connection(settings) as conn:
        yield ReactionRepository(conn)


def get_channel_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[ChannelRepository, None, None]:
    with open_catalog_connection(settings) as conn:
        yield ChannelRepository(conn)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedUser = Annotated[str, Depends(verify_api_key)]
OptionalViewer = Annotated[Optional[ViewerSession], Depends(get_viewer_session)]
RequiredViewer = Annotated[ViewerSession, Depends(require_viewer_session)]
StorageClientDep = Annotated[StorageClient, Depends(get_storage_client)]
ResolverDep = Annotated[SignedUrlResolver, Depends(get_signed_url_resolver)]
YouTubeClientDep = Annotated[Optional[YouTubeSearchClient], Depends(get_youtube_client)]
VideoRepositoryDep = Annotated[VideoRepository, Depends(get_video_repository)]
ReactionRepositoryDep = Annotated[ReactionRepository, Depends(get_reaction_repository)]
ChannelRepositoryDep = Annotated[ChannelRepository, Depends(get_channel_repository)]
SettingsDep = Annotated[Settings, Depends(get_settings)]

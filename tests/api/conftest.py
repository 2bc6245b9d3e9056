"""
Shared fixtures for API tests.

Every test gets a fresh app wired to in-memory storage and an in-memory
Snowflake connection through FastAPI dependency overrides.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import (
    get_channel_repository,
    get_reaction_repository,
    get_storage_client,
    get_video_repository,
)
from src.config.settings import Settings, get_settings
from src.core.catalog.models import Channel
from src.infrastructure.snowflake.client import MockSnowflakeConnection
from src.infrastructure.snowflake.repositories import (
    ChannelRepository,
    ReactionRepository,
    VideoRepository,
)
from src.infrastructure.storage.client import MockStorageClient
from src.main import create_app


API_KEY = "test-key"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        api_keys=API_KEY,
        youtube_api_key="",
        snowflake_mock_mode=True,
        r2_mock_mode=True,
    )


@pytest.fixture
def storage():
    return MockStorageClient()


@pytest.fixture
def connection():
    return MockSnowflakeConnection()


@pytest.fixture
def app(settings, storage, connection):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_storage_client] = lambda: storage
    app.dependency_overrides[get_video_repository] = lambda: VideoRepository(connection)
    app.dependency_overrides[get_reaction_repository] = lambda: ReactionRepository(connection)
    app.dependency_overrides[get_channel_repository] = lambda: ChannelRepository(connection)
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def put_object(storage):
    """Place an object in mock storage from synchronous test code."""
    def _put(bucket, path, data=b"\x00"):
        asyncio.run(storage.upload_object(bucket, path, data, "application/octet-stream"))
    return _put


@pytest.fixture
def auth_headers():
    """Request headers for an API client, optionally signed in as a viewer."""
    def _headers(user_id=None):
        headers = {"X-API-Key": API_KEY}
        if user_id:
            headers["X-User-Id"] = user_id
        return headers
    return _headers


@pytest.fixture
def ensure_channel(connection):
    """Give a user a channel (uploads require one); returns the channel."""
    def _ensure(user_id="user-1"):
        channels = ChannelRepository(connection)
        existing = channels.get_by_owner(user_id)
        if existing is not None:
            return existing
        return channels.create_channel(Channel(
            owner_id=user_id,
            name=f"{user_id} channel",
            handle=user_id,
            avatar_url=f"https://avatars.example/{user_id}.png",
        ))
    return _ensure

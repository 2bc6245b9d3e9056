"""
Snowflake database connection management.

Provides the context manager that opens Snowflake connections, plus an
in-memory mock connection for local development and tests.

Most code never touches this module directly - it goes through the
repositories, which handle the translation between domain models and
database rows.
"""

import logging
import re
from contextlib import contextmanager
from typing import Generator, Optional

from .repositories.channels import CHANNEL_COLUMNS
from .repositories.videos import VIDEO_COLUMNS, SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(key_path: str) -> bytes:
    """
    Load private key from file for key-pair authentication.

    Snowflake wants the key as DER-encoded PKCS8 bytes, not a file path.
    """
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    with open(key_path, 'rb') as key_file:
        private_key = serialization.load_pem_private_key(
            key_file.read(),
            password=None,
            backend=default_backend()
        )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Supports both password and key-pair authentication:
    - If private_key_path is set, uses key-pair auth
    - Otherwise, uses password auth

    Usage:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            # do work
            conn.commit()
    """
    try:
        import snowflake.connector
    except ImportError:
        raise ImportError(
            "snowflake-connector-python is required. "
            "Install with: pip install snowflake-connector-python"
        )

    conn = None
    try:
        connect_params = {
            'account': config.account,
            'user': config.user,
            'database': config.database,
            'schema': config.schema,
            'warehouse': config.warehouse,
            'role': config.role,
            'client_session_keep_alive': True,
        }

        if config.private_key_path:
            logger.info("Using key-pair authentication for Snowflake")
            connect_params['private_key'] = _load_private_key(config.private_key_path)
        elif config.password:
            logger.info("Using password authentication for Snowflake")
            connect_params['password'] = config.password
        else:
            raise SnowflakeConnectionError(
                "Either password or private_key_path must be provided"
            )

        conn = snowflake.connector.connect(**connect_params)

        logger.debug(
            "Established Snowflake connection",
            extra={
                "account": config.account,
                "database": config.database,
                "schema": config.schema,
            }
        )

    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}")

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

_VIDEO_FIELDS = [name.strip() for name in VIDEO_COLUMNS.split(",")]
_CHANNEL_FIELDS = [name.strip() for name in CHANNEL_COLUMNS.split(",")]


class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface to support the
    repositories without a real database. Queries are recognised by
    pattern matching, the same way the repositories write them.
    """

    def __init__(self, storage: dict) -> None:
        self._storage = storage
        self._results: list = []
        self._rowcount: int = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> 'MockSnowflakeCursor':
        logger.debug(
            "Mock cursor execute",
            extra={"query": " ".join(query.split())[:100], "params": params}
        )

        query_upper = " ".join(query.upper().split())
        params = params or ()
        self._results = []
        self._rowcount = 0

        if query_upper.startswith('INSERT INTO CHANNELS'):
            row = dict(zip(_CHANNEL_FIELDS, params))
            self._storage['channels'][row['channel_id']] = row
            self._rowcount = 1
        elif query_upper.startswith('INSERT INTO VIDEOS'):
            self._insert_video(params)
        elif query_upper.startswith('INSERT INTO VIDEO_TAGS'):
            self._storage['video_tags'].append(tuple(params))
            self._rowcount = 1
        elif query_upper.startswith('INSERT INTO WATCH_HISTORY'):
            self._storage['watch_history'].append(params)
            self._rowcount = 1
        elif query_upper.startswith('UPDATE VIDEOS') and 'VIEW_COUNT + 1' in query_upper:
            self._increment_views(params)
        elif query_upper.startswith('MERGE INTO LIKES'):
            video_id, user_id, is_like = params
            self._storage['likes'][(video_id, user_id)] = bool(is_like)
            self._rowcount = 1
        elif query_upper.startswith('DELETE FROM LIKES'):
            removed = self._storage['likes'].pop(tuple(params), None)
            self._rowcount = 0 if removed is None else 1
        elif query_upper.startswith('SELECT'):
            self._select(query_upper, params)

        return self

    def _insert_video(self, params: tuple) -> None:
        row = dict(zip(_VIDEO_FIELDS, params))
        self._storage['videos'][row['video_id']] = row
        self._rowcount = 1

    def _increment_views(self, params: tuple) -> None:
        row = self._storage['videos'].get(params[0])
        if row is not None:
            row['view_count'] += 1
            self._rowcount = 1

    def _select(self, query: str, params: tuple) -> None:
        if 'FROM CHANNELS' in query:
            self._select_channels(query, params)

        elif 'FROM VIDEO_TAGS' in query:
            tags = sorted(
                (position, tag) for video_id, position, tag in self._storage['video_tags']
                if video_id == params[0]
            )
            self._results = [(tag,) for _, tag in tags]

        elif 'FROM LIKES' in query and 'COUNT_IF' in query:
            reactions = [
                is_like for (video_id, _), is_like in self._storage['likes'].items()
                if video_id == params[0]
            ]
            likes = sum(1 for r in reactions if r)
            self._results = [(likes, len(reactions) - likes)]

        elif 'FROM LIKES' in query:
            reaction = self._storage['likes'].get(tuple(params))
            self._results = [] if reaction is None else [(reaction,)]

        elif 'FROM VIDEOS' in query and 'WHERE VIDEO_ID = %S' in query:
            row = self._storage['videos'].get(params[0])
            self._results = [] if row is None else [self._as_tuple(row)]

        elif 'FROM VIDEOS' in query:
            rows = [r for r in self._storage['videos'].values() if r['privacy'] == 'public']

            if 'VIDEO_ID != %S' in query:
                rows = [r for r in rows if r['video_id'] != params[0]]
            if 'TITLE ILIKE %S' in query:
                # Pattern is %term% with \%, \_ and \\ escaped to literals
                needle = re.sub(r'\\(.)', r'\1', params[0][1:-1]).lower()
                rows = [r for r in rows if needle in r['title'].lower()]

            rows.sort(key=lambda r: r['created_at'], reverse=True)
            limit = params[-1]
            self._results = [self._as_tuple(r) for r in rows[:limit]]

    def _select_channels(self, query: str, params: tuple) -> None:
        channels = self._storage['channels'].values()

        if 'CHANNEL_ID IN' in query:
            rows = [r for r in channels if r['channel_id'] in params]
        elif 'WHERE CHANNEL_ID = %S' in query:
            rows = [r for r in channels if r['channel_id'] == params[0]]
        elif 'WHERE OWNER_ID = %S' in query:
            rows = [r for r in channels if r['owner_id'] == params[0]]
        elif 'LOWER(HANDLE)' in query:
            rows = [r for r in channels if r['handle'].lower() == params[0].lower()]
        else:
            rows = []

        self._results = [tuple(r[name] for name in _CHANNEL_FIELDS) for r in rows]

    @staticmethod
    def _as_tuple(row: dict) -> tuple:
        return tuple(row[name] for name in _VIDEO_FIELDS)

    def fetchone(self):
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list:
        return self._results

    def close(self) -> None:
        pass

    @property
    def rowcount(self) -> int:
        return self._rowcount


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores data in memory using a simple dictionary structure.
    Writes are visible immediately; commit and rollback are no-ops.

    Not suitable for production, but perfect for:
    - Local development
    - Unit tests
    - CI/CD environments
    """

    def __init__(self) -> None:
        self._storage: dict = {
            'channels': {},        # {channel_id: row_dict}
            'videos': {},          # {video_id: row_dict}
            'video_tags': [],      # [(video_id, position, tag)]
            'watch_history': [],   # [params]
            'likes': {},           # {(video_id, user_id): is_like}
        }

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        return MockSnowflakeCursor(self._storage)

    def commit(self) -> None:
        logger.debug("Mock connection commit")

    def rollback(self) -> None:
        logger.debug("Mock connection rollback")

    def close(self) -> None:
        logger.debug("Mock connection close")

    # Helper methods for testing
    def _watch_history(self) -> list:
        return list(self._storage['watch_history'])

"""
Snowflake repository for the video catalog.

This module implements the repository pattern for video data access.
The repository:
1. Translates between domain models and database rows
2. Encapsulates all SQL queries
3. Provides a clean interface for the API layer

View counting is done with a single UPDATE ... SET view_count =
view_count + 1 so concurrent views never overwrite each other with a
stale client-side count.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol
from uuid import UUID, uuid4

from src.core.catalog.models import Privacy, Video, VideoNotFoundError
from src.core.playback.models import ViewerSession


logger = logging.getLogger(__name__)


VIDEO_COLUMNS = (
    "video_id, owner_id, channel_id, title, description, video_path, "
    "thumbnail_path, privacy, view_count, published_at, created_at"
)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    database: str = "CLIPSTREAM"
    schema: str = "PUBLIC"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class VideoRepository:
    """
    Repository for video catalog persistence.

    Each method corresponds to something a page needs:
    - create_video: Upload (the row plus its tags)
    - get_video / list_public: Watch and Home
    - search: Search
    - record_view: Watch, once per signed-in visit
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def create_video(self, video: Video) -> Video:
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                f"""
                INSERT INTO videos ({VIDEO_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    str(video.id),
                    video.owner_id,
                    str(video.channel_id) if video.channel_id else None,
                    video.title,
                    video.description,
                    video.video_path,
                    video.thumbnail_path,
                    video.privacy.value,
                    video.view_count,
                    video.published_at,
                    video.created_at,
                ),
            )

            for position, tag in enumerate(video.tags):
                cursor.execute(
                    "INSERT INTO video_tags (video_id, position, tag) VALUES (%s, %s, %s)",
                    (str(video.id), position, tag),
                )

            self._conn.commit()

            logger.info(
                "Created video",
                extra={
                    "video_id": str(video.id),
                    "owner_id": video.owner_id,
                    "tag_count": len(video.tags),
                }
            )

            return video

        except Exception as e:
            logger.error(
                "Failed to create video",
                extra={"video_id": str(video.id), "error": str(e)}
            )
            self._conn.rollback()
            raise
        finally:
            cursor.close()

    def get_video(self, video_id: UUID) -> Video:
        """
        Load a video by ID.

        Raises:
            VideoNotFoundError: If no such video exists
        """
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                f"SELECT {VIDEO_COLUMNS} FROM videos WHERE video_id = %s",
                (str(video_id),),
            )
            row = cursor.fetchone()

            if row is None:
                raise VideoNotFoundError(f"Video {video_id} not found")

            cursor.execute(
                "SELECT tag FROM video_tags WHERE video_id = %s ORDER BY position",
                (str(video_id),),
            )
            tags = [tag for (tag,) in cursor.fetchall()]
        finally:
            cursor.close()

        video = self._row_to_video(row)
        video.tags = tags
        return video

    def list_public(
        self,
        limit: int = 24,
        exclude_id: Optional[UUID] = None,
    ) -> list[Video]:
        """Newest public videos, optionally leaving one out (for 'related')."""
        cursor = self._conn.cursor()

        try:
            if exclude_id is not None:
                cursor.execute(
                    f"""
                    SELECT {VIDEO_COLUMNS} FROM videos
                    WHERE privacy = 'public' AND video_id != %s
                    ORDER BY created_at DESC
                    LIMIT %s
                    """,
                    (str(exclude_id), limit),
                )
            else:
                cursor.execute(
                    f"""
                    SELECT {VIDEO_COLUMNS} FROM videos
                    WHERE privacy = 'public'
                    ORDER BY created_at DESC
                    LIMIT %s
                    """,
                    (limit,),
                )
            rows = cursor.fetchall()
        finally:
            cursor.close()

        return [self._row_to_video(row) for row in rows]

    def search(self, term: str, limit: int = 24) -> list[Video]:
        """Case-insensitive substring match on public video titles."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                f"""
                SELECT {VIDEO_COLUMNS} FROM videos
                WHERE privacy = 'public' AND title ILIKE %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (f"%{_escape_like(term)}%", limit),
            )
            rows = cursor.fetchall()
        finally:
            cursor.close()

        return [self._row_to_video(row) for row in rows]

    def record_view(self, video_id: UUID, viewer: ViewerSession) -> bool:
        """
        Count one view and add it to the viewer's watch history.

        Returns False (and writes nothing) when the video doesn't exist.
        """
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                "UPDATE videos SET view_count = view_count + 1 WHERE video_id = %s",
                (str(video_id),),
            )

            if cursor.rowcount == 0:
                self._conn.rollback()
                return False

            cursor.execute(
                """
                INSERT INTO watch_history (history_id, user_id, video_id, watched_at)
                VALUES (%s, %s, %s, %s)
                """,
                (str(uuid4()), viewer.user_id, str(video_id), datetime.now(timezone.utc)),
            )
            self._conn.commit()

            logger.debug(
                "Recorded view",
                extra={"video_id": str(video_id), "user_id": viewer.user_id}
            )

            return True

        except Exception as e:
            logger.error(
                "Failed to record view",
                extra={"video_id": str(video_id), "error": str(e)}
            )
            self._conn.rollback()
            raise
        finally:
            cursor.close()

    def _row_to_video(self, row: tuple) -> Video:
        (
            video_id,
            owner_id,
            channel_id,
            title,
            description,
            video_path,
            thumbnail_path,
            privacy,
            view_count,
            published_at,
            created_at,
        ) = row

        return Video(
            id=UUID(str(video_id)),
            owner_id=owner_id,
            channel_id=UUID(str(channel_id)) if channel_id else None,
            title=title,
            description=description or "",
            video_path=video_path,
            thumbnail_path=thumbnail_path,
            privacy=Privacy(privacy),
            view_count=int(view_count or 0),
            published_at=published_at,
            created_at=created_at,
        )

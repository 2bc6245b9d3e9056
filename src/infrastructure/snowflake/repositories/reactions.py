"""
Like/dislike persistence.

A viewer has at most one reaction per video. Sending the reaction they
already have removes it; sending the other one replaces it.
"""

import logging
from typing import Optional
from uuid import UUID

from src.core.catalog.models import ReactionCounts
from src.core.playback.models import ViewerSession

from .videos import SnowflakeConnection

logger = logging.getLogger(__name__)


class ReactionRepository:

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def get_reaction(self, video_id: UUID, user_id: str) -> Optional[bool]:
        """True for a like, False for a dislike, None for neither."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                "SELECT is_like FROM likes WHERE video_id = %s AND user_id = %s",
                (str(video_id), user_id),
            )
            row = cursor.fetchone()
        finally:
            cursor.close()

        return None if row is None else bool(row[0])

    def set_reaction(
        self,
        video_id: UUID,
        viewer: ViewerSession,
        is_like: bool,
    ) -> Optional[bool]:
        """Apply a like/dislike click and return the viewer's resulting reaction."""
        current = self.get_reaction(video_id, viewer.user_id)
        cursor = self._conn.cursor()

        try:
            if current is is_like:
                cursor.execute(
                    "DELETE FROM likes WHERE video_id = %s AND user_id = %s",
                    (str(video_id), viewer.user_id),
                )
                result = None
            else:
                cursor.execute(
                    """
                    MERGE INTO likes t
                    USING (SELECT %s AS video_id, %s AS user_id, %s AS is_like) s
                    ON t.video_id = s.video_id AND t.user_id = s.user_id
                    WHEN MATCHED THEN UPDATE SET is_like = s.is_like
                    WHEN NOT MATCHED THEN INSERT (video_id, user_id, is_like)
                        VALUES (s.video_id, s.user_id, s.is_like)
                    """,
                    (str(video_id), viewer.user_id, is_like),
                )
                result = is_like

            self._conn.commit()

        except Exception as e:
            logger.error(
                "Failed to set reaction",
                extra={"video_id": str(video_id), "user_id": viewer.user_id, "error": str(e)}
            )
            self._conn.rollback()
            raise
        finally:
            cursor.close()

        logger.debug(
            "Reaction updated",
            extra={"video_id": str(video_id), "user_id": viewer.user_id, "reaction": result}
        )

        return result

    def counts(self, video_id: UUID) -> ReactionCounts:
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                "SELECT COUNT_IF(is_like), COUNT_IF(NOT is_like) FROM likes WHERE video_id = %s",
                (str(video_id),),
            )
            row = cursor.fetchone()
        finally:
            cursor.close()

        if row is None:
            return ReactionCounts()
        return ReactionCounts(likes=int(row[0] or 0), dislikes=int(row[1] or 0))

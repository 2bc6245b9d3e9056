"""
Snowflake repository for channels.

Snowflake does not enforce UNIQUE constraints, so the one-channel-per-user
and unique-handle rules are checked here before inserting.
"""

import logging
from typing import Iterable, Optional
from uuid import UUID

from src.core.catalog.models import Channel, ChannelConflictError, ChannelNotFoundError

from .videos import SnowflakeConnection

logger = logging.getLogger(__name__)


CHANNEL_COLUMNS = (
    "channel_id, owner_id, name, handle, description, "
    "avatar_url, subscriber_count, created_at"
)


class ChannelRepository:

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def create_channel(self, channel: Channel) -> Channel:
        """
        Persist a new channel.

        Raises:
            ChannelConflictError: If the owner already has a channel or the
                handle belongs to someone else
        """
        if self.get_by_owner(channel.owner_id) is not None:
            raise ChannelConflictError("You already have a channel")
        if self.get_by_handle(channel.handle) is not None:
            raise ChannelConflictError(f"Handle {channel.handle} is already taken")

        cursor = self._conn.cursor()

        try:
            cursor.execute(
                f"""
                INSERT INTO channels ({CHANNEL_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    str(channel.id),
                    channel.owner_id,
                    channel.name,
                    channel.handle,
                    channel.description,
                    channel.avatar_url,
                    channel.subscriber_count,
                    channel.created_at,
                ),
            )
            self._conn.commit()

        except Exception as e:
            logger.error(
                "Failed to create channel",
                extra={"owner_id": channel.owner_id, "error": str(e)}
            )
            self._conn.rollback()
            raise
        finally:
            cursor.close()

        logger.info(
            "Created channel",
            extra={"channel_id": str(channel.id), "handle": channel.handle}
        )

        return channel

    def get_channel(self, channel_id: UUID) -> Channel:
        """
        Raises:
            ChannelNotFoundError: If no such channel exists
        """
        channel = self._fetch_one("channel_id = %s", str(channel_id))
        if channel is None:
            raise ChannelNotFoundError(f"Channel {channel_id} not found")
        return channel

    def get_by_owner(self, owner_id: str) -> Optional[Channel]:
        return self._fetch_one("owner_id = %s", owner_id)

    def get_by_handle(self, handle: str) -> Optional[Channel]:
        """Case-insensitive lookup; handle is expected in "@name" form."""
        return self._fetch_one("LOWER(handle) = LOWER(%s)", handle)

    def get_many(self, channel_ids: Iterable[UUID]) -> dict[UUID, Channel]:
        """Channels for a page of video cards, keyed by ID. Unknown IDs are skipped."""
        ids = list(dict.fromkeys(str(channel_id) for channel_id in channel_ids))
        if not ids:
            return {}

        placeholders = ", ".join(["%s"] * len(ids))
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                f"SELECT {CHANNEL_COLUMNS} FROM channels WHERE channel_id IN ({placeholders})",
                tuple(ids),
            )
            rows = cursor.fetchall()
        finally:
            cursor.close()

        channels = [self._row_to_channel(row) for row in rows]
        return {channel.id: channel for channel in channels}

    def _fetch_one(self, condition: str, value: str) -> Optional[Channel]:
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                f"SELECT {CHANNEL_COLUMNS} FROM channels WHERE {condition}",
                (value,),
            )
            row = cursor.fetchone()
        finally:
            cursor.close()

        return None if row is None else self._row_to_channel(row)

    def _row_to_channel(self, row: tuple) -> Channel:
        (
            channel_id,
            owner_id,
            name,
            handle,
            description,
            avatar_url,
            subscriber_count,
            created_at,
        ) = row

        return Channel(
            id=UUID(str(channel_id)),
            owner_id=owner_id,
            name=name,
            handle=handle,
            description=description or "",
            avatar_url=avatar_url,
            subscriber_count=int(subscriber_count or 0),
            created_at=created_at,
        )

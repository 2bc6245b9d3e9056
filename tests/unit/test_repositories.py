"""
Unit tests for the Snowflake repositories.

Run against the in-memory mock connection, plus a few checks on the
exact SQL where the statement shape is the behavior (atomic view count).
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from src.core.catalog.models import (
    Channel,
    ChannelConflictError,
    ChannelNotFoundError,
    Privacy,
    Video,
    VideoNotFoundError,
)
from src.core.playback.models import ViewerSession
from src.infrastructure.snowflake.client import MockSnowflakeConnection
from src.infrastructure.snowflake.repositories import (
    ChannelRepository,
    ReactionRepository,
    VideoRepository,
)


BASE_TIME = datetime(2026, 2, 1, tzinfo=timezone.utc)


@pytest.fixture
def connection():
    return MockSnowflakeConnection()


@pytest.fixture
def videos(connection):
    return VideoRepository(connection)


@pytest.fixture
def reactions(connection):
    return ReactionRepository(connection)


@pytest.fixture
def channels(connection):
    return ChannelRepository(connection)


@pytest.fixture
def viewer():
    return ViewerSession(user_id="viewer-1")


def make_video(title="Clip", minutes=0, **kwargs):
    return Video(
        owner_id=kwargs.pop("owner_id", "owner-1"),
        title=title,
        video_path=f"owner-1/{uuid4().hex}.mp4",
        created_at=BASE_TIME + timedelta(minutes=minutes),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# VideoRepository
# ---------------------------------------------------------------------------

class TestVideoRepository:

    def test_create_then_get_round_trips_fields(self, videos):
        video = make_video(
            title="Sunset", description="Beach", thumbnail_path="owner-1/1.jpg",
            privacy=Privacy.UNLISTED,
        )
        videos.create_video(video)

        loaded = videos.get_video(video.id)

        assert loaded.id == video.id
        assert loaded.title == "Sunset"
        assert loaded.description == "Beach"
        assert loaded.thumbnail_path == "owner-1/1.jpg"
        assert loaded.privacy is Privacy.UNLISTED
        assert loaded.view_count == 0

    def test_get_missing_video_raises(self, videos):
        with pytest.raises(VideoNotFoundError):
            videos.get_video(uuid4())

    def test_list_public_is_newest_first_and_skips_private(self, videos):
        old = videos.create_video(make_video("Old", minutes=0))
        new = videos.create_video(make_video("New", minutes=5))
        videos.create_video(make_video("Secret", minutes=10, privacy=Privacy.PRIVATE))

        listed = videos.list_public()

        assert [v.id for v in listed] == [new.id, old.id]

    def test_list_public_respects_limit_and_exclusion(self, videos):
        first = videos.create_video(make_video("A", minutes=0))
        second = videos.create_video(make_video("B", minutes=1))
        third = videos.create_video(make_video("C", minutes=2))

        assert [v.id for v in videos.list_public(limit=2)] == [third.id, second.id]
        assert [v.id for v in videos.list_public(exclude_id=third.id)] == [second.id, first.id]

    def test_search_matches_title_case_insensitively(self, videos):
        videos.create_video(make_video("Cat Videos Compilation"))
        videos.create_video(make_video("Dog park"))

        results = videos.search("cat")

        assert [v.title for v in results] == ["Cat Videos Compilation"]

    def test_create_then_get_keeps_channel_tags_and_publish_time(self, videos):
        channel_id = uuid4()
        video = make_video(
            channel_id=channel_id,
            tags=["cooking", "pasta"],
            published_at=BASE_TIME,
        )
        videos.create_video(video)

        loaded = videos.get_video(video.id)

        assert loaded.channel_id == channel_id
        assert loaded.tags == ["cooking", "pasta"]
        assert loaded.published_at == BASE_TIME

    def test_tags_are_not_shared_between_videos(self, videos):
        tagged = videos.create_video(make_video(tags=["a"]))
        untagged = videos.create_video(make_video())

        assert videos.get_video(tagged.id).tags == ["a"]
        assert videos.get_video(untagged.id).tags == []

    def test_failed_create_rolls_back(self):
        conn = MagicMock()
        conn.cursor.return_value.execute.side_effect = [None, RuntimeError("tag insert failed")]

        with pytest.raises(RuntimeError):
            VideoRepository(conn).create_video(make_video(tags=["a"]))

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()

    @pytest.mark.parametrize("term, expected", [
        ("%", ["100% fresh"]),
        ("_", ["snake_case tips"]),
        ("100%", ["100% fresh"]),
        ("\\", []),
    ])
    def test_search_treats_wildcards_as_literals(self, videos, term, expected):
        videos.create_video(make_video("100% fresh"))
        videos.create_video(make_video("snake_case tips"))
        videos.create_video(make_video("Plain title"))

        assert [v.title for v in videos.search(term)] == expected

    def test_search_escapes_like_wildcards(self):
        captured = MagicMock()
        captured.cursor.return_value.fetchall.return_value = []
        VideoRepository(captured).search("100%")

        params = captured.cursor.return_value.execute.call_args[0][1]
        assert params[0] == "%100\\%%"

    def test_record_view_counts_and_logs_history(self, videos, connection, viewer):
        video = videos.create_video(make_video())

        assert videos.record_view(video.id, viewer)
        assert videos.record_view(video.id, viewer)

        assert videos.get_video(video.id).view_count == 2
        history = connection._watch_history()
        assert len(history) == 2
        assert history[0][1:3] == ("viewer-1", str(video.id))

    def test_record_view_for_missing_video(self, videos, connection, viewer):
        assert videos.record_view(uuid4(), viewer) is False
        assert connection._watch_history() == []

    def test_view_count_is_incremented_in_the_database(self, viewer):
        """The increment must happen server-side, not read-modify-write."""
        conn = MagicMock()
        cursor = conn.cursor.return_value
        cursor.rowcount = 1

        VideoRepository(conn).record_view(uuid4(), viewer)

        first_sql = cursor.execute.call_args_list[0][0][0]
        assert "view_count = view_count + 1" in first_sql
        assert not any("SELECT" in c[0][0] for c in cursor.execute.call_args_list)
        conn.commit.assert_called_once()

    def test_failed_write_rolls_back(self, viewer):
        conn = MagicMock()
        conn.cursor.return_value.execute.side_effect = RuntimeError("warehouse suspended")

        with pytest.raises(RuntimeError):
            VideoRepository(conn).record_view(uuid4(), viewer)

        conn.rollback.assert_called_once()
        conn.cursor.return_value.close.assert_called_once()


# ---------------------------------------------------------------------------
# ReactionRepository
# ---------------------------------------------------------------------------

class TestReactionRepository:

    def test_no_reaction_by_default(self, reactions):
        video_id = uuid4()

        assert reactions.get_reaction(video_id, "viewer-1") is None
        counts = reactions.counts(video_id)
        assert (counts.likes, counts.dislikes) == (0, 0)

    def test_like_then_like_again_removes_it(self, reactions, viewer):
        video_id = uuid4()

        assert reactions.set_reaction(video_id, viewer, True) is True
        assert reactions.counts(video_id).likes == 1

        assert reactions.set_reaction(video_id, viewer, True) is None
        assert reactions.counts(video_id).likes == 0
        assert reactions.get_reaction(video_id, viewer.user_id) is None

    def test_switching_reaction_replaces_it(self, reactions, viewer):
        video_id = uuid4()
        reactions.set_reaction(video_id, viewer, True)

        assert reactions.set_reaction(video_id, viewer, False) is False

        counts = reactions.counts(video_id)
        assert (counts.likes, counts.dislikes) == (0, 1)

    def test_counts_across_viewers(self, reactions):
        video_id = uuid4()
        reactions.set_reaction(video_id, ViewerSession("a"), True)
        reactions.set_reaction(video_id, ViewerSession("b"), True)
        reactions.set_reaction(video_id, ViewerSession("c"), False)
        reactions.set_reaction(uuid4(), ViewerSession("a"), False)

        counts = reactions.counts(video_id)

        assert (counts.likes, counts.dislikes) == (2, 1)


# ---------------------------------------------------------------------------
# ChannelRepository
# ---------------------------------------------------------------------------

def make_channel(owner_id="owner-1", handle="owner1", name="Owner One"):
    return Channel(owner_id=owner_id, name=name, handle=handle, created_at=BASE_TIME)


class TestChannelRepository:

    def test_create_then_get_round_trips_fields(self, channels):
        channel = make_channel()
        channel.avatar_url = "https://avatars.example/1.png"
        channels.create_channel(channel)

        loaded = channels.get_channel(channel.id)

        assert loaded.id == channel.id
        assert loaded.owner_id == "owner-1"
        assert loaded.handle == "@owner1"
        assert loaded.avatar_url == "https://avatars.example/1.png"
        assert loaded.subscriber_count == 0

    def test_get_missing_channel_raises(self, channels):
        with pytest.raises(ChannelNotFoundError):
            channels.get_channel(uuid4())

    def test_lookup_by_owner(self, channels):
        channel = channels.create_channel(make_channel())

        assert channels.get_by_owner("owner-1").id == channel.id
        assert channels.get_by_owner("someone-else") is None

    def test_owner_gets_one_channel(self, channels):
        channels.create_channel(make_channel())

        with pytest.raises(ChannelConflictError):
            channels.create_channel(make_channel(handle="second"))

    def test_handles_are_unique_ignoring_case(self, channels):
        channels.create_channel(make_channel())

        with pytest.raises(ChannelConflictError, match="taken"):
            channels.create_channel(make_channel(owner_id="owner-2", handle="OWNER1"))

    def test_get_many_skips_unknown_ids(self, channels):
        first = channels.create_channel(make_channel())
        second = channels.create_channel(make_channel(owner_id="owner-2", handle="owner2"))

        found = channels.get_many([first.id, second.id, uuid4(), first.id])

        assert set(found) == {first.id, second.id}
        assert found[second.id].name == "Owner One"

    def test_get_many_with_no_ids_skips_the_query(self):
        conn = MagicMock()

        assert ChannelRepository(conn).get_many([]) == {}
        conn.cursor.assert_not_called()

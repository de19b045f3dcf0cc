"""Tests for field-level change tracking on the stored entities."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from tubesync.models.channel import Channel
from tubesync.models.playlist import Playlist
from tubesync.models.video import GeoLocation, Video, VideoVisibility

CREATED = datetime(2024, 1, 1, tzinfo=UTC)
LATER = datetime(2024, 2, 1, tzinfo=UTC)


def _video(**overrides: Any) -> Video:
    fields: dict[str, Any] = {
        "uploads_feed_id": "UU1",
        "video_id": "v1",
        "title": "Title",
        "description": "Desc",
        "tags": ["a", "b"],
        "duration": timedelta(minutes=3),
        "visibility": VideoVisibility.PUBLIC,
        "published_at": CREATED,
        "category_id": "22",
        "default_language": "en",
        "default_audio_language": "en",
        "latitude": None,
        "longitude": None,
        "location_description": None,
        "etag": "e1",
        "comments_allowed": True,
        "cached_at": CREATED,
        "updated_at": CREATED,
    }
    fields.update(overrides)
    return Video(**fields)


class TestVideoApplyDetails:
    def test_identical_is_not_dirty(self) -> None:
        stored = _video()
        assert stored.apply_details(_video(), LATER) is False
        assert stored.updated_at == CREATED

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("title", "Other"),
            ("description", "Other"),
            ("duration", timedelta(minutes=4)),
            ("visibility", VideoVisibility.UNLISTED),
            ("published_at", LATER),
            ("category_id", "10"),
            ("default_language", "de"),
            ("default_audio_language", None),
            ("location_description", "Berlin"),
            ("etag", "e2"),
            ("comments_allowed", False),
        ],
    )
    def test_single_field_change(self, field: str, value: Any) -> None:
        stored = _video()
        assert stored.apply_details(_video(**{field: value}), LATER) is True
        assert getattr(stored, field) == value
        assert stored.updated_at == LATER

    def test_title_comparison_is_case_sensitive(self) -> None:
        stored = _video(title="Title")
        assert stored.apply_details(_video(title="title"), LATER) is True

    def test_tag_order_matters(self) -> None:
        stored = _video(tags=["a", "b"])
        assert stored.apply_details(_video(tags=["b", "a"]), LATER) is True
        assert stored.tags == ["b", "a"]

    def test_location_change(self) -> None:
        stored = _video()
        incoming = _video()
        incoming.location = GeoLocation(52.5, 13.4)
        assert stored.apply_details(incoming, LATER) is True
        assert stored.location == GeoLocation(52.5, 13.4)

    def test_location_cleared(self) -> None:
        stored = _video(latitude=1.0, longitude=2.0)
        assert stored.apply_details(_video(), LATER) is True
        assert stored.location is None

    def test_unknown_comments_keep_stored_value(self) -> None:
        stored = _video(comments_allowed=False)
        assert stored.apply_details(_video(comments_allowed=None), LATER) is False
        assert stored.comments_allowed is False

    def test_identity_is_untouched(self) -> None:
        stored = _video()
        stored.apply_details(_video(title="New"), LATER)
        assert (stored.uploads_feed_id, stored.video_id) == ("UU1", "v1")
        assert stored.cached_at == CREATED


class TestVideoHelpers:
    def test_is_short(self) -> None:
        assert _video(duration=timedelta(seconds=60)).is_short is True
        assert _video(duration=timedelta(seconds=61)).is_short is False

    def test_url(self) -> None:
        assert _video().url == "https://www.youtube.com/watch?v=v1"


class TestChannel:
    def _channel(self, cutoff: datetime | None = None) -> Channel:
        return Channel(
            channel_id="UC1",
            name="Name",
            uploads_feed_id="UU1",
            etag="e",
            updated_at=CREATED,
            last_uploads_cutoff=cutoff,
        )

    def test_cutoff_set_from_empty(self) -> None:
        channel = self._channel()
        assert channel.advance_uploads_cutoff(LATER, LATER) is True
        assert channel.last_uploads_cutoff == LATER
        assert channel.updated_at == LATER

    def test_cutoff_never_moves_back(self) -> None:
        channel = self._channel(cutoff=LATER)
        assert channel.advance_uploads_cutoff(CREATED, LATER) is False
        assert channel.last_uploads_cutoff == LATER
        assert channel.updated_at == CREATED

    def test_equal_cutoff_is_no_change(self) -> None:
        channel = self._channel(cutoff=LATER)
        assert channel.advance_uploads_cutoff(LATER, LATER) is False

    def test_snapshot_unchanged(self) -> None:
        channel = self._channel()
        assert channel.apply_remote_snapshot("Name", "UU1", "e", LATER) is False
        assert channel.updated_at == CREATED

    def test_snapshot_changed(self) -> None:
        channel = self._channel()
        assert channel.apply_remote_snapshot("Renamed", "UU1", "e2", LATER) is True
        assert channel.name == "Renamed"
        assert channel.etag == "e2"
        assert channel.updated_at == LATER

    def test_snapshot_rejects_blank_name(self) -> None:
        channel = self._channel()
        with pytest.raises(ValueError, match="non-empty"):
            channel.apply_remote_snapshot("  ", "UU1", "e", LATER)


class TestPlaylist:
    def _playlist(self) -> Playlist:
        return Playlist(
            playlist_id="PL1",
            channel_id="UC1",
            title="Mix",
            etag="e",
            updated_at=CREATED,
            last_membership_sync_at=None,
        )

    def test_title_change(self) -> None:
        playlist = self._playlist()
        assert playlist.apply_remote("Mix 2", "e", LATER) is True
        assert playlist.updated_at == LATER

    def test_no_change(self) -> None:
        playlist = self._playlist()
        assert playlist.apply_remote("Mix", "e", LATER) is False
        assert playlist.updated_at == CREATED

    def test_membership_sync_sets_both_timestamps(self) -> None:
        playlist = self._playlist()
        playlist.mark_membership_synced(LATER)
        assert playlist.last_membership_sync_at == LATER
        assert playlist.updated_at == LATER

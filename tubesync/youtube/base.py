"""Remote catalog protocol, records and error types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence


class CatalogError(Exception):
    """Base class for remote catalog failures."""


class CatalogAuthorizationError(CatalogError):
    """The credentials were rejected or lack the required scope."""


class CatalogTransientError(CatalogError):
    """A retryable failure: network error, rate limit or 5xx."""


class CatalogNotFoundError(CatalogError):
    """The requested resource does not exist remotely."""


@dataclass
class ChannelRecord:
    """Channel metadata as returned by the catalog."""

    channel_id: str
    name: str
    uploads_feed_id: str | None
    etag: str | None = None


@dataclass
class VideoRecord:
    """Video details as returned by the catalog."""

    channel_id: str
    video_id: str
    title: str
    published_at: datetime
    description: str = ""
    tags: list[str] = field(default_factory=list)
    duration: timedelta = field(default_factory=timedelta)
    privacy_status: str | None = None
    scheduled_publish_at: datetime | None = None
    category_id: str | None = None
    default_language: str | None = None
    default_audio_language: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    location_description: str | None = None
    etag: str | None = None


@dataclass
class PlaylistRecord:
    """Playlist metadata as returned by the catalog."""

    playlist_id: str
    title: str | None = None
    etag: str | None = None


def uploads_feed_id_for(channel_id: str) -> str:
    """Return the uploads playlist id YouTube derives from a channel id."""
    if channel_id.startswith("UC"):
        return "UU" + channel_id[2:]
    return channel_id


@runtime_checkable
class CatalogClient(Protocol):
    """Read access to the remote YouTube catalog.

    Streams are lazy and paginated internally; a consumer may stop iterating
    at any point without further pages being fetched.
    """

    async def get_channel(self, channel_id: str) -> ChannelRecord | None:
        """Fetch channel metadata, or None if the channel does not exist."""
        ...

    def stream_uploads(
        self, uploads_feed_id: str, since: datetime | None = None
    ) -> AsyncIterator[VideoRecord]:
        """Yield uploads newest-first, stopping once items are not newer than ``since``."""
        ...

    def stream_playlists(self, channel_id: str) -> AsyncIterator[PlaylistRecord]:
        """Yield the playlists owned by a channel."""
        ...

    def stream_playlist_members(self, playlist_id: str) -> AsyncIterator[str]:
        """Yield the video ids in a playlist."""
        ...

    async def fetch_video_details(self, video_ids: Sequence[str]) -> list[VideoRecord]:
        """Fetch full details for the given ids. Unknown ids are omitted."""
        ...

    async def check_comments_enabled(self, video_id: str) -> bool | None:
        """Return whether comments are enabled, or None if it cannot be told."""
        ...

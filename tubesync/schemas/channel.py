"""Channel and sync schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ChannelResponse(BaseModel):
    """A registered channel."""

    channel_id: str
    name: str
    uploads_feed_id: str | None = None
    etag: str | None = None
    updated_at: str
    last_uploads_cutoff: str | None = None


class ChannelPullResponse(BaseModel):
    """Result of pulling a channel from YouTube."""

    channel: ChannelResponse
    changed: bool


class SyncReportResponse(BaseModel):
    """Counters of a finished channel sync."""

    channel_id: str
    videos_inserted: int = 0
    videos_updated: int = 0
    playlists_upserted: int = 0
    memberships_added: int = 0
    memberships_removed: int = 0
    errors: list[str] = Field(default_factory=list)

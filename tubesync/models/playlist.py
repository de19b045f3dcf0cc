"""Playlist and playlist membership models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tubesync.models.base import Base, UTCDateTime


class Playlist(Base):
    """A playlist owned by a channel."""

    __tablename__ = "playlists"

    playlist_id: Mapped[str] = mapped_column(String, primary_key=True)
    channel_id: Mapped[str] = mapped_column(
        String, ForeignKey("channels.channel_id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    etag: Mapped[str | None] = mapped_column(String, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    last_membership_sync_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (Index("idx_playlists_channel_id", "channel_id"),)

    def apply_details(self, incoming: Playlist, now: datetime) -> bool:
        """Copy title and ETag from a freshly fetched playlist. Returns True if dirty."""
        return self.apply_remote(incoming.title, incoming.etag, now)

    def apply_remote(self, title: str | None, etag: str | None, now: datetime) -> bool:
        dirty = False

        if self.title != title:
            self.title = title
            dirty = True

        if self.etag != etag:
            self.etag = etag
            dirty = True

        if dirty:
            self.updated_at = now
        return dirty

    def mark_membership_synced(self, synced_at: datetime) -> None:
        """Record a membership pass, whether or not anything changed."""
        self.last_membership_sync_at = synced_at
        self.updated_at = synced_at


class VideoPlaylist(Base):
    """Membership of a video in a playlist."""

    __tablename__ = "video_playlists"

    video_id: Mapped[str] = mapped_column(String, primary_key=True)
    playlist_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("playlists.playlist_id", ondelete="CASCADE"),
        primary_key=True,
    )

    __table_args__ = (Index("idx_video_playlists_playlist_id", "playlist_id"),)

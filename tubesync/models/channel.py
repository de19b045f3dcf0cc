"""Channel model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tubesync.models.base import Base, UTCDateTime


class Channel(Base):
    """A registered YouTube channel and its uploads watermark."""

    __tablename__ = "channels"

    channel_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    uploads_feed_id: Mapped[str | None] = mapped_column(String, nullable=True)
    etag: Mapped[str | None] = mapped_column(String, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    last_uploads_cutoff: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    def advance_uploads_cutoff(self, candidate: datetime, now: datetime) -> bool:
        """Move the uploads watermark forward. Returns True if it moved.

        A candidate at or before the stored cutoff is ignored, so the cutoff
        never goes backwards even when the remote feed is out of order.
        """
        if self.last_uploads_cutoff is not None and candidate <= self.last_uploads_cutoff:
            return False
        self.last_uploads_cutoff = candidate
        self.updated_at = now
        return True

    def apply_remote_snapshot(
        self,
        name: str,
        uploads_feed_id: str | None,
        etag: str | None,
        now: datetime,
    ) -> bool:
        """Apply channel metadata pulled from YouTube. Returns True if anything changed."""
        dirty = False

        if self.name != name:
            if not name or not name.strip():
                raise ValueError("Channel name must be a non-empty string")
            self.name = name
            dirty = True

        if self.uploads_feed_id != uploads_feed_id:
            self.uploads_feed_id = uploads_feed_id
            dirty = True

        if self.etag != etag:
            self.etag = etag
            dirty = True

        if dirty:
            self.updated_at = now
        return dirty

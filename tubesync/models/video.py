"""Video model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

from sqlalchemy import JSON, Boolean, Enum, Float, Index, Interval, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tubesync.models.base import Base, UTCDateTime

SHORT_MAX_DURATION = timedelta(seconds=60)


class VideoVisibility(StrEnum):
    """Display visibility of a video."""

    PUBLIC = "public"
    UNLISTED = "unlisted"
    PRIVATE = "private"
    SCHEDULED = "scheduled"


@dataclass(frozen=True)
class GeoLocation:
    """Recording location of a video."""

    latitude: float
    longitude: float


class Video(Base):
    """A video from a channel's uploads feed."""

    __tablename__ = "videos"

    uploads_feed_id: Mapped[str] = mapped_column(String, primary_key=True)
    video_id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    duration: Mapped[timedelta] = mapped_column(Interval, nullable=False, default=timedelta())
    visibility: Mapped[VideoVisibility] = mapped_column(
        Enum(VideoVisibility, native_enum=False, length=16), nullable=False
    )
    published_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    category_id: Mapped[str | None] = mapped_column(String, nullable=True)
    default_language: Mapped[str | None] = mapped_column(String, nullable=True)
    default_audio_language: Mapped[str | None] = mapped_column(String, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    etag: Mapped[str | None] = mapped_column(String, nullable=True)
    comments_allowed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    cached_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_videos_video_id", "video_id"),
        Index("idx_videos_published_at_video_id", "published_at", "video_id"),
    )

    @property
    def location(self) -> GeoLocation | None:
        if self.latitude is None or self.longitude is None:
            return None
        return GeoLocation(self.latitude, self.longitude)

    @location.setter
    def location(self, value: GeoLocation | None) -> None:
        self.latitude = value.latitude if value is not None else None
        self.longitude = value.longitude if value is not None else None

    @property
    def is_short(self) -> bool:
        return self.duration <= SHORT_MAX_DURATION

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"

    def apply_details(self, incoming: Video, now: datetime) -> bool:
        """Copy observable fields from ``incoming``. Returns True if any changed.

        ``updated_at`` is bumped only when something changed. An unknown
        ``comments_allowed`` on the incoming side keeps the stored value.
        """
        dirty = False

        if self.title != incoming.title:
            self.title = incoming.title
            dirty = True

        if self.description != incoming.description:
            self.description = incoming.description
            dirty = True

        if self.published_at != incoming.published_at:
            self.published_at = incoming.published_at
            dirty = True

        if self.duration != incoming.duration:
            self.duration = incoming.duration
            dirty = True

        if self.visibility != incoming.visibility:
            self.visibility = incoming.visibility
            dirty = True

        new_tags = list(incoming.tags or [])
        if list(self.tags or []) != new_tags:
            self.tags = new_tags
            dirty = True

        if self.category_id != incoming.category_id:
            self.category_id = incoming.category_id
            dirty = True

        if self.default_language != incoming.default_language:
            self.default_language = incoming.default_language
            dirty = True

        if self.default_audio_language != incoming.default_audio_language:
            self.default_audio_language = incoming.default_audio_language
            dirty = True

        if self.location != incoming.location:
            self.location = incoming.location
            dirty = True

        if self.location_description != incoming.location_description:
            self.location_description = incoming.location_description
            dirty = True

        if self.etag != incoming.etag:
            self.etag = incoming.etag
            dirty = True

        if incoming.comments_allowed is not None and self.comments_allowed != incoming.comments_allowed:
            self.comments_allowed = incoming.comments_allowed
            dirty = True

        if dirty:
            self.updated_at = now
        return dirty

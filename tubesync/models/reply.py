"""Comment reply model (read side only)."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from sqlalchemy import Enum, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tubesync.models.base import Base, UTCDateTime


class ReplyStatus(StrEnum):
    PULLED = "pulled"
    SUGGESTED = "suggested"
    APPROVED = "approved"
    POSTED = "posted"
    IGNORED = "ignored"


class Reply(Base):
    """A top-level comment pulled for reply drafting."""

    __tablename__ = "replies"

    comment_id: Mapped[str] = mapped_column(String, primary_key=True)
    video_id: Mapped[str] = mapped_column(String, nullable=False)
    video_title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    comment_text: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ReplyStatus] = mapped_column(
        Enum(ReplyStatus, native_enum=False, length=16), nullable=False, default=ReplyStatus.PULLED
    )
    pulled_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    suggested_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    posted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (Index("idx_replies_pulled_at_comment_id", "pulled_at", "comment_id"),)

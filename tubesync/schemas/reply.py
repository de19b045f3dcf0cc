"""Reply listing schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from tubesync.models.reply import ReplyStatus


class ReplySummary(BaseModel):
    """Pulled comment entry in a listing page."""

    comment_id: str
    video_id: str
    video_title: str
    comment_text: str
    status: ReplyStatus
    pulled_at: str
    suggested_at: str | None = None
    approved_at: str | None = None
    posted_at: str | None = None


class ReplyPage(BaseModel):
    """One page of replies, most recently pulled first."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[ReplySummary]
    next_page_token: str | None = Field(default=None, alias="nextPageToken")

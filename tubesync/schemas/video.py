"""Video listing schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from tubesync.models.video import VideoVisibility


class VideoSummary(BaseModel):
    """Video entry in a listing page."""

    video_id: str
    uploads_feed_id: str
    title: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    duration_seconds: int
    visibility: VideoVisibility
    published_at: str
    updated_at: str
    comments_allowed: bool | None = None
    is_short: bool = False
    url: str


class VideoPage(BaseModel):
    """One page of videos, newest first."""

    model_config = ConfigDict(populate_by_name=True)

    items: list[VideoSummary]
    next_page_token: str | None = Field(default=None, alias="nextPageToken")

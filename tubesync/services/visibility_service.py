"""Map raw YouTube privacy status to display visibility."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tubesync.models.video import VideoVisibility

if TYPE_CHECKING:
    from datetime import datetime


def map_visibility(
    privacy_status: str | None,
    scheduled_publish_at: datetime | None,
    now: datetime,
) -> VideoVisibility:
    """Resolve the visibility shown for a video.

    A private video with a publish time in the future is scheduled. Otherwise
    the raw status is used (case-insensitive), falling back to private when it
    is missing or unknown.
    """
    status = (privacy_status or "").strip().lower()
    if status == "private" and scheduled_publish_at is not None and scheduled_publish_at > now:
        return VideoVisibility.SCHEDULED

    try:
        return VideoVisibility(status)
    except ValueError:
        return VideoVisibility.PRIVATE

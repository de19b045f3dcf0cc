"""Video listing with cursor pagination."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import and_, func, or_, select

from tubesync.exceptions import ChannelNotFoundError
from tubesync.models.channel import Channel
from tubesync.models.video import Video, VideoVisibility
from tubesync.schemas.video import VideoPage, VideoSummary
from tubesync.services.cursor_service import encode_cursor, resolve_page_size, resolve_page_token
from tubesync.services.datetime_service import ensure_utc, format_iso

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_PAGE_SIZE = 30
MAX_PAGE_SIZE = 100


def video_filter_binding(title: str | None, visibility: Iterable[VideoVisibility] | None) -> str:
    """Return the filter fingerprint a video page token is bound to."""
    normalized_title = (title or "").strip().lower()
    visibilities = ",".join(sorted({VideoVisibility(v).value for v in visibility or ()}))
    return f"{normalized_title}|{visibilities}"


def _summary(video: Video) -> VideoSummary:
    return VideoSummary(
        video_id=video.video_id,
        uploads_feed_id=video.uploads_feed_id,
        title=video.title,
        description=video.description,
        tags=list(video.tags or []),
        duration_seconds=int(video.duration.total_seconds()),
        visibility=video.visibility,
        published_at=format_iso(video.published_at),
        updated_at=format_iso(video.updated_at),
        comments_allowed=video.comments_allowed,
        is_short=video.is_short,
        url=video.url,
    )


async def list_videos(
    session: AsyncSession,
    *,
    channel_id: str | None = None,
    title: str | None = None,
    visibility: list[VideoVisibility] | None = None,
    page_size: int | None = None,
    page_token: str | None = None,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> VideoPage:
    """List videos newest first by ``(published_at, video_id)``.

    ``title`` is a case-insensitive substring filter. Raises
    InvalidPageSizeError, InvalidPageTokenError, or ChannelNotFoundError for
    an unknown ``channel_id``.
    """
    size = resolve_page_size(page_size, default_page_size, max_page_size)
    binding = video_filter_binding(title, visibility)
    cursor = resolve_page_token(page_token, binding)

    stmt = select(Video)

    if channel_id:
        channel = await session.get(Channel, channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)
        stmt = stmt.where(Video.uploads_feed_id == channel.uploads_feed_id)

    normalized_title = (title or "").strip().lower()
    if normalized_title:
        stmt = stmt.where(func.lower(Video.title).contains(normalized_title, autoescape=True))

    if visibility:
        stmt = stmt.where(Video.visibility.in_(list(set(visibility))))

    if cursor is not None:
        key = ensure_utc(cursor.ordering_key)
        stmt = stmt.where(
            or_(
                Video.published_at < key,
                and_(Video.published_at == key, Video.video_id < cursor.tie_break_id),
            )
        )

    stmt = stmt.order_by(Video.published_at.desc(), Video.video_id.desc()).limit(size + 1)
    result = await session.execute(stmt)
    rows = list(result.scalars().all())

    next_page_token = None
    if len(rows) > size:
        rows = rows[:size]
        last = rows[-1]
        next_page_token = encode_cursor(last.published_at, last.video_id, binding)

    return VideoPage(items=[_summary(v) for v in rows], next_page_token=next_page_token)

"""Reply listing with cursor pagination."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import and_, or_, select

from tubesync.models.reply import Reply, ReplyStatus
from tubesync.schemas.reply import ReplyPage, ReplySummary
from tubesync.services.cursor_service import encode_cursor, resolve_page_size, resolve_page_token
from tubesync.services.datetime_service import ensure_utc, format_iso

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_PAGE_SIZE = 30
MAX_PAGE_SIZE = 100


def reply_filter_binding(status: Iterable[ReplyStatus] | None) -> str:
    """Return the filter fingerprint a reply page token is bound to."""
    return ",".join(sorted({ReplyStatus(s).value for s in status or ()}))


def _summary(reply: Reply) -> ReplySummary:
    return ReplySummary(
        comment_id=reply.comment_id,
        video_id=reply.video_id,
        video_title=reply.video_title,
        comment_text=reply.comment_text,
        status=reply.status,
        pulled_at=format_iso(reply.pulled_at),
        suggested_at=format_iso(reply.suggested_at) if reply.suggested_at else None,
        approved_at=format_iso(reply.approved_at) if reply.approved_at else None,
        posted_at=format_iso(reply.posted_at) if reply.posted_at else None,
    )


async def list_replies(
    session: AsyncSession,
    *,
    status: list[ReplyStatus] | None = None,
    page_size: int | None = None,
    page_token: str | None = None,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> ReplyPage:
    """List replies most recently pulled first by ``(pulled_at, comment_id)``."""
    size = resolve_page_size(page_size, default_page_size, max_page_size)
    binding = reply_filter_binding(status)
    cursor = resolve_page_token(page_token, binding)

    stmt = select(Reply)
    if status:
        stmt = stmt.where(Reply.status.in_(list(set(status))))

    if cursor is not None:
        key = ensure_utc(cursor.ordering_key)
        stmt = stmt.where(
            or_(
                Reply.pulled_at < key,
                and_(Reply.pulled_at == key, Reply.comment_id < cursor.tie_break_id),
            )
        )

    stmt = stmt.order_by(Reply.pulled_at.desc(), Reply.comment_id.desc()).limit(size + 1)
    result = await session.execute(stmt)
    rows = list(result.scalars().all())

    next_page_token = None
    if len(rows) > size:
        rows = rows[:size]
        last = rows[-1]
        next_page_token = encode_cursor(last.pulled_at, last.comment_id, binding or None)

    return ReplyPage(items=[_summary(r) for r in rows], next_page_token=next_page_token)

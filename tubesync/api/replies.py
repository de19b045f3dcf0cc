"""Reply listing endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tubesync.api.deps import get_session, get_settings
from tubesync.config import Settings
from tubesync.models.reply import ReplyStatus
from tubesync.schemas.reply import ReplyPage
from tubesync.services.reply_service import list_replies

router = APIRouter(prefix="/api/replies", tags=["replies"])


@router.get("", response_model=ReplyPage)
async def get_replies(
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    status: Annotated[list[ReplyStatus] | None, Query()] = None,
    page_size: Annotated[int | None, Query(alias="pageSize")] = None,
    page_token: Annotated[str | None, Query(alias="pageToken", max_length=2048)] = None,
) -> ReplyPage:
    """List pulled replies, most recent first."""
    return await list_replies(
        session,
        status=status,
        page_size=page_size,
        page_token=page_token,
        default_page_size=settings.reply_page_size_default,
        max_page_size=settings.reply_page_size_max,
    )

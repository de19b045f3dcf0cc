"""Video listing endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tubesync.api.deps import get_session, get_settings
from tubesync.config import Settings
from tubesync.models.video import VideoVisibility
from tubesync.schemas.video import VideoPage
from tubesync.services.video_service import list_videos

router = APIRouter(prefix="/api/videos", tags=["videos"])


@router.get("", response_model=VideoPage)
async def get_videos(
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    channel_id: Annotated[str | None, Query(alias="channelId")] = None,
    title: Annotated[str | None, Query(max_length=500)] = None,
    visibility: Annotated[list[VideoVisibility] | None, Query()] = None,
    page_size: Annotated[int | None, Query(alias="pageSize")] = None,
    page_token: Annotated[str | None, Query(alias="pageToken", max_length=2048)] = None,
) -> VideoPage:
    """List cached videos newest first."""
    return await list_videos(
        session,
        channel_id=channel_id,
        title=title,
        visibility=visibility,
        page_size=page_size,
        page_token=page_token,
        default_page_size=settings.video_page_size_default,
        max_page_size=settings.video_page_size_max,
    )

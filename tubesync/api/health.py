"""Health endpoint: database reachability and sync freshness."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tubesync.api.deps import get_session
from tubesync.models.channel import Channel
from tubesync.models.playlist import Playlist
from tubesync.services.datetime_service import format_iso

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

VERSION = "0.1.0"


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    channels: int | None = None
    last_sync_at: str | None = None


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> HealthResponse:
    """Report whether the store answers, how many channels it tracks and the last sync.

    ``last_sync_at`` is the latest playlist membership pass, the final step of a
    channel sync.
    """
    try:
        channels = (await session.execute(select(func.count()).select_from(Channel))).scalar_one()
        last_sync = (
            await session.execute(select(func.max(Playlist.last_membership_sync_at)))
        ).scalar_one_or_none()
    except SQLAlchemyError:
        logger.warning("Health check database query failed", exc_info=True)
        return HealthResponse(status="degraded", version=VERSION, database="error")

    return HealthResponse(
        status="ok",
        version=VERSION,
        database="ok",
        channels=int(channels),
        last_sync_at=format_iso(last_sync) if last_sync is not None else None,
    )

"""Channel registration and sync endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tubesync.api.deps import (
    get_catalog_client,
    get_channel_locks,
    get_session,
    get_session_factory,
    get_settings,
)
from tubesync.config import Settings
from tubesync.models.channel import Channel
from tubesync.schemas.channel import ChannelPullResponse, ChannelResponse, SyncReportResponse
from tubesync.services.channel_service import list_channels, pull_channel
from tubesync.services.datetime_service import format_iso
from tubesync.services.sync_service import ChannelLockRegistry, sync_channel
from tubesync.youtube.base import CatalogClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/channels", tags=["channels"])


def _channel_response(channel: Channel) -> ChannelResponse:
    return ChannelResponse(
        channel_id=channel.channel_id,
        name=channel.name,
        uploads_feed_id=channel.uploads_feed_id,
        etag=channel.etag,
        updated_at=format_iso(channel.updated_at),
        last_uploads_cutoff=(
            format_iso(channel.last_uploads_cutoff) if channel.last_uploads_cutoff else None
        ),
    )


@router.get("", response_model=list[ChannelResponse])
async def get_channels(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> list[ChannelResponse]:
    """List registered channels."""
    return [_channel_response(c) for c in await list_channels(session)]


@router.post("/pull/{channel_id}", response_model=ChannelPullResponse)
async def pull_channel_endpoint(
    channel_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    client: Annotated[CatalogClient, Depends(get_catalog_client)],
) -> ChannelPullResponse:
    """Register a channel, or refresh its metadata, from YouTube."""
    channel, changed = await pull_channel(session, client, channel_id)
    return ChannelPullResponse(channel=_channel_response(channel), changed=changed)


@router.post("/{channel_id}/sync", response_model=SyncReportResponse)
async def sync_channel_endpoint(
    channel_id: str,
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    client: Annotated[CatalogClient, Depends(get_catalog_client)],
    locks: Annotated[ChannelLockRegistry, Depends(get_channel_locks)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SyncReportResponse:
    """Sync a channel's uploads and playlists. 409 if it is already syncing."""
    report = await sync_channel(
        session_factory,
        client,
        channel_id,
        batch_size=settings.sync_batch_size,
        unknown_chunk_size=settings.unknown_video_chunk_size,
        locks=locks,
    )
    return SyncReportResponse(
        channel_id=channel_id,
        videos_inserted=report.videos_inserted,
        videos_updated=report.videos_updated,
        playlists_upserted=report.playlists_upserted,
        memberships_added=report.memberships_added,
        memberships_removed=report.memberships_removed,
        errors=report.errors,
    )

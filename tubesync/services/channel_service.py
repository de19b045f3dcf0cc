"""Channel registration: pull channel metadata from YouTube into the store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from tubesync.exceptions import ChannelNotFoundError
from tubesync.models.channel import Channel
from tubesync.services.datetime_service import now_utc

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

    from tubesync.youtube.base import CatalogClient

logger = logging.getLogger(__name__)


async def pull_channel(
    session: AsyncSession,
    client: CatalogClient,
    channel_id: str,
    *,
    now: datetime | None = None,
) -> tuple[Channel, bool]:
    """Create or refresh a channel from the catalog.

    Returns the stored channel and whether it was created or changed.
    Raises ChannelNotFoundError if the catalog has no such channel.
    """
    now = now or now_utc()
    record = await client.get_channel(channel_id)
    if record is None:
        raise ChannelNotFoundError(channel_id)

    try:
        channel = await session.get(Channel, channel_id)
        if channel is None:
            if not record.name or not record.name.strip():
                msg = "Channel name must be a non-empty string"
                raise ValueError(msg)
            channel = Channel(
                channel_id=channel_id,
                name=record.name,
                uploads_feed_id=record.uploads_feed_id,
                etag=record.etag,
                updated_at=now,
            )
            session.add(channel)
            changed = True
            logger.info("Registered channel %s (%s)", channel_id, record.name)
        else:
            changed = channel.apply_remote_snapshot(
                record.name, record.uploads_feed_id, record.etag, now
            )
            if changed:
                logger.info("Updated channel %s from YouTube", channel_id)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    return channel, changed


async def list_channels(session: AsyncSession) -> list[Channel]:
    """Return registered channels ordered by name."""
    result = await session.execute(select(Channel).order_by(Channel.name, Channel.channel_id))
    return list(result.scalars().all())

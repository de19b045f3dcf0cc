"""Channel sync: uploads delta sync, playlist membership reconciliation, orchestration.

Every remote page and every store write is an ``await``, so a caller may cancel
a sync at any of them. Batches (and playlists) commit one at a time; work
committed before a cancellation or failure stays committed, and the next run
picks up from the stored cutoff and membership sets.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import delete, select

from tubesync.exceptions import ChannelNotFoundError, SyncInProgressError, SyncPreconditionError
from tubesync.models.channel import Channel
from tubesync.models.playlist import Playlist, VideoPlaylist
from tubesync.models.video import Video
from tubesync.services.datetime_service import ensure_utc, now_utc
from tubesync.services.upsert_service import (
    DEFAULT_BATCH_SIZE,
    UpsertResult,
    upsert_playlists,
    upsert_videos,
)
from tubesync.services.visibility_service import map_visibility
from tubesync.youtube.base import CatalogError, uploads_feed_id_for

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from tubesync.youtube.base import CatalogClient, VideoRecord

logger = logging.getLogger(__name__)

DEFAULT_UNKNOWN_CHUNK_SIZE = 50
_ID_QUERY_CHUNK = 500


@dataclass
class MembershipResult:
    """Outcome of a playlist membership pass."""

    playlists_upserted: int = 0
    added: int = 0
    removed: int = 0


@dataclass
class SyncReport:
    """Aggregated counters of one channel sync."""

    videos_inserted: int = 0
    videos_updated: int = 0
    playlists_upserted: int = 0
    memberships_added: int = 0
    memberships_removed: int = 0
    errors: list[str] = field(default_factory=list)


class ChannelLockRegistry:
    """One asyncio lock per channel, so a channel never syncs twice at once.

    Membership reconciliation is a read-diff-write over a playlist and is not
    safe against a second reconciliation of the same playlist interleaving.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def lock_for(self, channel_id: str) -> asyncio.Lock:
        lock = self._locks.get(channel_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[channel_id] = lock
        return lock

    def is_locked(self, channel_id: str) -> bool:
        lock = self._locks.get(channel_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, channel_id: str) -> AsyncIterator[None]:
        """Hold the channel's lock. The entry is dropped once no one holds or awaits it."""
        lock = self.lock_for(channel_id)
        self._holders[channel_id] = self._holders.get(channel_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[channel_id] -= 1
            if self._holders[channel_id] == 0:
                del self._holders[channel_id]
                if not lock.locked() and self._locks.get(channel_id) is lock:
                    del self._locks[channel_id]


async def get_syncable_channel(session: AsyncSession, channel_id: str) -> Channel:
    """Load a channel and check it can be synced.

    Raises ChannelNotFoundError if it is not registered and
    SyncPreconditionError if it has no uploads feed.
    """
    channel = await session.get(Channel, channel_id)
    if channel is None:
        raise ChannelNotFoundError(channel_id)
    if not channel.uploads_feed_id:
        msg = f"Channel {channel_id} has no uploads feed"
        raise SyncPreconditionError(msg)
    return channel


def video_from_record(
    record: VideoRecord,
    uploads_feed_id: str,
    now: datetime,
    comments_allowed: bool | None = None,
) -> Video:
    """Build a candidate Video row from a catalog record."""
    published_at = ensure_utc(record.published_at)
    scheduled = ensure_utc(record.scheduled_publish_at) if record.scheduled_publish_at else None
    video = Video(
        uploads_feed_id=uploads_feed_id,
        video_id=record.video_id,
        title=record.title,
        description=record.description,
        tags=list(record.tags),
        duration=record.duration,
        visibility=map_visibility(record.privacy_status, scheduled, now),
        published_at=published_at,
        category_id=record.category_id,
        default_language=record.default_language,
        default_audio_language=record.default_audio_language,
        latitude=record.latitude,
        longitude=record.longitude,
        location_description=record.location_description,
        etag=record.etag,
        comments_allowed=comments_allowed,
        cached_at=now,
        updated_at=now,
    )
    return video


async def _comments_allowed(client: CatalogClient, video_id: str) -> bool | None:
    try:
        return await client.check_comments_enabled(video_id)
    except CatalogError as exc:
        logger.warning("Could not check comments for video %s: %s", video_id, exc)
        return None


async def _flush_uploads(
    session: AsyncSession,
    client: CatalogClient,
    uploads_feed_id: str,
    records: list[VideoRecord],
    now: datetime,
    batch_size: int,
) -> UpsertResult:
    allowed = await asyncio.gather(*(_comments_allowed(client, r.video_id) for r in records))
    videos = [
        video_from_record(record, uploads_feed_id, now, comments_allowed)
        for record, comments_allowed in zip(records, allowed, strict=True)
    ]
    return await upsert_videos(session, videos, now, batch_size=batch_size)


async def sync_uploads(
    session: AsyncSession,
    client: CatalogClient,
    channel_id: str,
    *,
    now: datetime | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> UpsertResult:
    """Delta-sync a channel's uploads feed newer than its stored cutoff.

    The cutoff is advanced to the newest publish time seen only after every
    batch has been committed.
    """
    now = now or now_utc()
    channel = await get_syncable_channel(session, channel_id)
    uploads_feed_id = channel.uploads_feed_id
    assert uploads_feed_id is not None
    cutoff = channel.last_uploads_cutoff

    logger.info("Executing uploads delta sync for channel %s (cutoff: %s)", channel_id, cutoff)

    total = UpsertResult()
    batch: list[VideoRecord] = []
    seen: set[str] = set()
    max_published_at: datetime | None = None

    async for record in client.stream_uploads(uploads_feed_id, since=cutoff):
        if record.video_id in seen:
            continue
        seen.add(record.video_id)

        published_at = ensure_utc(record.published_at)
        if cutoff is not None and published_at <= cutoff:
            continue
        if max_published_at is None or published_at > max_published_at:
            max_published_at = published_at

        batch.append(record)
        if len(batch) >= batch_size:
            total += await _flush_uploads(session, client, uploads_feed_id, batch, now, batch_size)
            batch = []

    if batch:
        total += await _flush_uploads(session, client, uploads_feed_id, batch, now, batch_size)

    if max_published_at is not None:
        channel = await session.get(Channel, channel_id, populate_existing=True)
        if channel is not None and channel.advance_uploads_cutoff(max_published_at, now):
            await session.commit()
            logger.debug(
                "Updated uploads cutoff to %s for channel %s", max_published_at, channel_id
            )

    return total


def _chunks(items: list[str], size: int) -> Iterable[list[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


async def _known_video_ids(session: AsyncSession, video_ids: set[str]) -> set[str]:
    known: set[str] = set()
    for chunk in _chunks(sorted(video_ids), _ID_QUERY_CHUNK):
        result = await session.execute(select(Video.video_id).where(Video.video_id.in_(chunk)))
        known.update(result.scalars().all())
    return known


async def _membership_video_ids(session: AsyncSession, playlist_id: str) -> set[str]:
    result = await session.execute(
        select(VideoPlaylist.video_id).where(VideoPlaylist.playlist_id == playlist_id)
    )
    return set(result.scalars().all())


async def _import_unknown_videos(
    session: AsyncSession,
    client: CatalogClient,
    channel_id: str,
    uploads_feed_id: str | None,
    video_ids: list[str],
    now: datetime,
    batch_size: int,
    chunk_size: int,
) -> UpsertResult:
    total = UpsertResult()
    for chunk in _chunks(video_ids, chunk_size):
        wanted = set(chunk)
        records = await client.fetch_video_details(chunk)
        videos = []
        for record in records:
            if record.video_id not in wanted:
                continue
            if record.channel_id == channel_id and uploads_feed_id:
                feed_id = uploads_feed_id
            else:
                feed_id = uploads_feed_id_for(record.channel_id or channel_id)
            videos.append(video_from_record(record, feed_id, now))
        total += await upsert_videos(session, videos, now, batch_size=batch_size)
    return total


async def _reconcile_playlist(
    session: AsyncSession,
    client: CatalogClient,
    channel_id: str,
    uploads_feed_id: str | None,
    playlist_id: str,
    now: datetime,
    batch_size: int,
    chunk_size: int,
) -> tuple[int, int]:
    remote_ids: set[str] = set()
    async for video_id in client.stream_playlist_members(playlist_id):
        remote_ids.add(video_id)

    local_ids = await _membership_video_ids(session, playlist_id)
    to_add = remote_ids - local_ids
    to_remove = local_ids - remote_ids

    addable: set[str] = set()
    if to_add:
        unknown = to_add - await _known_video_ids(session, to_add)
        if unknown:
            imported = await _import_unknown_videos(
                session,
                client,
                channel_id,
                uploads_feed_id,
                sorted(unknown),
                now,
                batch_size,
                chunk_size,
            )
            logger.debug(
                "Imported %d unknown videos for playlist %s", imported.inserted, playlist_id
            )
        # Ids the catalog returned nothing for stay out until a later pass.
        addable = await _known_video_ids(session, to_add)

    try:
        for video_id in sorted(addable):
            session.add(VideoPlaylist(video_id=video_id, playlist_id=playlist_id))
        if to_remove:
            await session.execute(
                delete(VideoPlaylist).where(
                    VideoPlaylist.playlist_id == playlist_id,
                    VideoPlaylist.video_id.in_(to_remove),
                )
            )
        playlist = await session.get(Playlist, playlist_id)
        if playlist is not None:
            playlist.mark_membership_synced(now)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    return len(addable), len(to_remove)


async def sync_playlist_memberships(
    session: AsyncSession,
    client: CatalogClient,
    channel_id: str,
    *,
    now: datetime | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    unknown_chunk_size: int = DEFAULT_UNKNOWN_CHUNK_SIZE,
) -> MembershipResult:
    """Upsert a channel's playlists and reconcile each playlist's membership set.

    Videos that a playlist references but the store does not know yet are
    fetched and inserted before their membership rows, so no membership ever
    points at a missing video.
    """
    now = now or now_utc()
    channel = await session.get(Channel, channel_id)
    if channel is None:
        raise ChannelNotFoundError(channel_id)
    uploads_feed_id = channel.uploads_feed_id

    remote: list[Playlist] = []
    async for record in client.stream_playlists(channel_id):
        if not record.playlist_id or not record.playlist_id.strip():
            continue
        remote.append(
            Playlist(
                playlist_id=record.playlist_id,
                channel_id=channel_id,
                title=record.title,
                etag=record.etag,
                updated_at=now,
            )
        )

    if not remote:
        return MembershipResult()

    playlist_ids = list(dict.fromkeys(p.playlist_id for p in remote))
    upserted = await upsert_playlists(session, remote, now, batch_size=batch_size)
    result = MembershipResult(playlists_upserted=upserted.inserted + upserted.updated)

    for playlist_id in playlist_ids:
        added, removed = await _reconcile_playlist(
            session,
            client,
            channel_id,
            uploads_feed_id,
            playlist_id,
            now,
            batch_size,
            unknown_chunk_size,
        )
        result.added += added
        result.removed += removed

    return result


async def sync_channel(
    session_factory: async_sessionmaker[AsyncSession],
    client: CatalogClient,
    channel_id: str,
    *,
    now: datetime | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    unknown_chunk_size: int = DEFAULT_UNKNOWN_CHUNK_SIZE,
    locks: ChannelLockRegistry | None = None,
) -> SyncReport:
    """Run the uploads sync and then the membership sync for one channel.

    Precondition faults are raised before any remote call. A catalog failure
    aborts only the leg it happens in; its message is added to
    ``SyncReport.errors`` and the other leg's counters are still reported.
    Raises SyncInProgressError if ``locks`` shows the channel already syncing.
    """
    if locks is None:
        return await _sync_channel(
            session_factory, client, channel_id, now, batch_size, unknown_chunk_size
        )

    if locks.is_locked(channel_id):
        raise SyncInProgressError(channel_id)
    async with locks.hold(channel_id):
        return await _sync_channel(
            session_factory, client, channel_id, now, batch_size, unknown_chunk_size
        )


async def _sync_channel(
    session_factory: async_sessionmaker[AsyncSession],
    client: CatalogClient,
    channel_id: str,
    now: datetime | None,
    batch_size: int,
    unknown_chunk_size: int,
) -> SyncReport:
    now = now or now_utc()
    async with session_factory() as session:
        await get_syncable_channel(session, channel_id)

    logger.info("Starting sync for channel %s", channel_id)
    report = SyncReport()

    try:
        async with session_factory() as session:
            uploads = await sync_uploads(
                session, client, channel_id, now=now, batch_size=batch_size
            )
        report.videos_inserted = uploads.inserted
        report.videos_updated = uploads.updated
    except CatalogError as exc:
        logger.error("Uploads sync failed for channel %s: %s", channel_id, exc, exc_info=exc)
        report.errors.append(f"uploads: {exc}")

    try:
        async with session_factory() as session:
            memberships = await sync_playlist_memberships(
                session,
                client,
                channel_id,
                now=now,
                batch_size=batch_size,
                unknown_chunk_size=unknown_chunk_size,
            )
        report.playlists_upserted = memberships.playlists_upserted
        report.memberships_added = memberships.added
        report.memberships_removed = memberships.removed
    except CatalogError as exc:
        logger.error("Playlist sync failed for channel %s: %s", channel_id, exc, exc_info=exc)
        report.errors.append(f"playlists: {exc}")

    logger.info(
        "Sync completed for channel %s. Videos: %d inserted, %d updated. "
        "Playlists: %d upserted. Memberships: %d added, %d removed",
        channel_id,
        report.videos_inserted,
        report.videos_updated,
        report.playlists_upserted,
        report.memberships_added,
        report.memberships_removed,
    )
    return report

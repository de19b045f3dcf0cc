"""Batch upsert engine: load-then-branch writes with change tracking."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from tubesync.exceptions import InternalServerError
from tubesync.models.playlist import Playlist
from tubesync.models.video import Video

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Hashable, Iterable, Sequence
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


T = TypeVar("T", Video, Playlist)


@dataclass
class UpsertResult:
    """Counts of rows inserted and rows that actually changed."""

    inserted: int = 0
    updated: int = 0

    def __add__(self, other: UpsertResult) -> UpsertResult:
        return UpsertResult(self.inserted + other.inserted, self.updated + other.updated)


def _video_key(video: Video) -> tuple[str, str]:
    return (video.uploads_feed_id, video.video_id)


def _playlist_key(playlist: Playlist) -> str:
    return playlist.playlist_id


async def _load_videos(
    session: AsyncSession, keys: Sequence[tuple[str, str]]
) -> dict[tuple[str, str], Video]:
    wanted = set(keys)
    video_ids = {video_id for _, video_id in keys}
    result = await session.execute(select(Video).where(Video.video_id.in_(video_ids)))
    return {_video_key(v): v for v in result.scalars().all() if _video_key(v) in wanted}


async def _load_playlists(session: AsyncSession, keys: Sequence[str]) -> dict[str, Playlist]:
    result = await session.execute(select(Playlist).where(Playlist.playlist_id.in_(keys)))
    return {p.playlist_id: p for p in result.scalars().all()}


async def _apply_batch(
    session: AsyncSession,
    batch: list[T],
    key: Callable[[T], Hashable],
    load: Callable[[AsyncSession, list], Awaitable[dict]],
    now: datetime,
) -> UpsertResult:
    result = UpsertResult()
    existing = await load(session, [key(c) for c in batch])
    for candidate in batch:
        row = existing.get(key(candidate))
        if row is None:
            session.add(candidate)
            result.inserted += 1
        elif row.apply_details(candidate, now):
            result.updated += 1
    await session.commit()
    return result


async def _upsert(
    session: AsyncSession,
    candidates: Iterable[T],
    key: Callable[[T], Hashable],
    load: Callable[[AsyncSession, list], Awaitable[dict]],
    now: datetime,
    batch_size: int,
) -> UpsertResult:
    # Last occurrence of an identity wins; first-seen order is kept.
    unique: dict[Hashable, T] = {}
    for candidate in candidates:
        unique[key(candidate)] = candidate
    if not unique:
        return UpsertResult()

    items = list(unique.values())
    total = UpsertResult()
    for start in range(0, len(items), batch_size):
        batch = items[start : start + batch_size]
        try:
            total += await _apply_batch(session, batch, key, load, now)
        except IntegrityError:
            # A concurrent writer inserted one of our rows first. Reload and
            # treat those rows as updates.
            await session.rollback()
            logger.info("Upsert conflict on batch of %d rows, retrying", len(batch))
            try:
                total += await _apply_batch(session, batch, key, load, now)
            except IntegrityError as exc:
                await session.rollback()
                msg = f"Upsert of {len(batch)} rows still conflicts after reload: {exc}"
                raise InternalServerError(msg) from exc
            except Exception:
                await session.rollback()
                raise
        except Exception:
            await session.rollback()
            raise
    return total


async def upsert_videos(
    session: AsyncSession,
    videos: Iterable[Video],
    now: datetime,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> UpsertResult:
    """Insert new videos and dirty-check existing ones, one transaction per batch.

    Raises InternalServerError if a batch still conflicts after one reload.
    """
    return await _upsert(session, videos, _video_key, _load_videos, now, batch_size)


async def upsert_playlists(
    session: AsyncSession,
    playlists: Iterable[Playlist],
    now: datetime,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> UpsertResult:
    """Insert new playlists and dirty-check title/ETag of existing ones."""
    return await _upsert(session, playlists, _playlist_key, _load_playlists, now, batch_size)

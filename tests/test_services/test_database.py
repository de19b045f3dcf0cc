"""Tests for database engine, session management and schema."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from tests.conftest import CHANNEL_ID, seed_channel
from tubesync.models.channel import Channel
from tubesync.models.playlist import Playlist

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession


class TestDatabase:
    async def test_engine_connects(self, db_engine: AsyncEngine) -> None:
        async with db_engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            assert result.scalar() == 1

    async def test_session_works(self, db_session: AsyncSession) -> None:
        result = await db_session.execute(text("SELECT 42"))
        assert result.scalar() == 42

    async def test_foreign_keys_enabled(self, db_session: AsyncSession) -> None:
        result = await db_session.execute(text("PRAGMA foreign_keys"))
        assert result.scalar() == 1

    async def test_playlist_requires_channel(self, db_session: AsyncSession) -> None:
        db_session.add(
            Playlist(
                playlist_id="PL1",
                channel_id="missing",
                title=None,
                updated_at=datetime(2024, 1, 1, tzinfo=UTC),
            )
        )
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    async def test_datetimes_come_back_in_utc(self, db_session: AsyncSession) -> None:
        await seed_channel(db_session, cutoff=datetime(2024, 1, 1, 12, 0, tzinfo=UTC))
        db_session.expunge_all()

        channel = await db_session.get(Channel, CHANNEL_ID)
        assert channel is not None
        assert channel.last_uploads_cutoff == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        assert channel.last_uploads_cutoff.tzinfo is not None

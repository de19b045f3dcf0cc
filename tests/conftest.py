"""Shared test fixtures for TubeSync."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient

from tubesync.config import Settings
from tubesync.database import create_engine
from tubesync.main import create_app
from tubesync.models.base import Base
from tubesync.models.channel import Channel
from tubesync.youtube.base import CatalogError, ChannelRecord, PlaylistRecord, VideoRecord

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator, Sequence
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

CHANNEL_ID = "UCabcdefghijklmnopqrstuv"
UPLOADS_ID = "UUabcdefghijklmnopqrstuv"
T0 = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def at(minutes: int) -> datetime:
    """Timestamp ``minutes`` after T0."""
    return T0 + timedelta(minutes=minutes)


def make_video_record(
    video_id: str,
    published_at: datetime,
    *,
    channel_id: str = CHANNEL_ID,
    **overrides: Any,
) -> VideoRecord:
    fields: dict[str, Any] = {
        "channel_id": channel_id,
        "video_id": video_id,
        "title": f"Video {video_id}",
        "published_at": published_at,
        "description": f"About {video_id}",
        "tags": ["tag"],
        "duration": timedelta(minutes=5),
        "privacy_status": "public",
        "etag": f"etag-{video_id}",
    }
    fields.update(overrides)
    return VideoRecord(**fields)


class FakeCatalogClient:
    """In-memory remote catalog.

    ``uploads`` maps an uploads feed id to its records in feed order. The fake
    does not apply the ``since`` cutoff itself, so callers see every record.
    ``failures`` maps a method name to an error raised on its next call;
    ``uploads_fail_after`` makes ``stream_uploads`` raise after that many items.
    """

    def __init__(self) -> None:
        self.channels: dict[str, ChannelRecord] = {}
        self.uploads: dict[str, list[VideoRecord]] = {}
        self.playlists: dict[str, list[PlaylistRecord]] = {}
        self.members: dict[str, list[str]] = {}
        self.details: dict[str, VideoRecord] = {}
        self.comments: dict[str, bool | None] = {}
        self.comment_errors: set[str] = set()
        self.failures: dict[str, CatalogError] = {}
        self.uploads_fail_after: int | None = None
        self.calls: list[tuple[str, Any]] = []

    def add_channel(self, channel_id: str = CHANNEL_ID, name: str = "Test Channel") -> None:
        self.channels[channel_id] = ChannelRecord(
            channel_id=channel_id,
            name=name,
            uploads_feed_id="UU" + channel_id[2:],
            etag=f"etag-{channel_id}",
        )

    def add_upload(self, record: VideoRecord, uploads_feed_id: str = UPLOADS_ID) -> None:
        self.uploads.setdefault(uploads_feed_id, []).append(record)
        self.details[record.video_id] = record

    def _maybe_fail(self, method: str) -> None:
        error = self.failures.pop(method, None)
        if error is not None:
            raise error

    async def get_channel(self, channel_id: str) -> ChannelRecord | None:
        self.calls.append(("get_channel", channel_id))
        self._maybe_fail("get_channel")
        return self.channels.get(channel_id)

    async def stream_uploads(
        self, uploads_feed_id: str, since: datetime | None = None
    ) -> AsyncIterator[VideoRecord]:
        self.calls.append(("stream_uploads", (uploads_feed_id, since)))
        self._maybe_fail("stream_uploads")
        for index, record in enumerate(list(self.uploads.get(uploads_feed_id, []))):
            if self.uploads_fail_after is not None and index >= self.uploads_fail_after:
                raise CatalogError("uploads feed broke")
            yield record

    async def stream_playlists(self, channel_id: str) -> AsyncIterator[PlaylistRecord]:
        self.calls.append(("stream_playlists", channel_id))
        self._maybe_fail("stream_playlists")
        for record in list(self.playlists.get(channel_id, [])):
            yield record

    async def stream_playlist_members(self, playlist_id: str) -> AsyncIterator[str]:
        self.calls.append(("stream_playlist_members", playlist_id))
        self._maybe_fail("stream_playlist_members")
        for video_id in list(self.members.get(playlist_id, [])):
            yield video_id

    async def fetch_video_details(self, video_ids: Sequence[str]) -> list[VideoRecord]:
        self.calls.append(("fetch_video_details", list(video_ids)))
        self._maybe_fail("fetch_video_details")
        return [self.details[v] for v in video_ids if v in self.details]

    async def check_comments_enabled(self, video_id: str) -> bool | None:
        self.calls.append(("check_comments_enabled", video_id))
        if video_id in self.comment_errors:
            raise CatalogError(f"comments lookup failed for {video_id}")
        return self.comments.get(video_id, True)

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


async def seed_channel(
    session: AsyncSession,
    channel_id: str = CHANNEL_ID,
    *,
    uploads_feed_id: str | None = UPLOADS_ID,
    cutoff: datetime | None = None,
    name: str = "Test Channel",
) -> Channel:
    channel = Channel(
        channel_id=channel_id,
        name=name,
        uploads_feed_id=uploads_feed_id,
        etag=None,
        updated_at=T0,
        last_uploads_cutoff=cutoff,
    )
    session.add(channel)
    await session.commit()
    return channel


@asynccontextmanager
async def create_test_client(
    settings: Settings,
    catalog_client: Any | None = None,
) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with a fully initialized app.

    Manually performs the work of the application lifespan (engine, schema)
    because ASGITransport does not trigger it.
    """
    app = create_app(settings, catalog_client=catalog_client or FakeCatalogClient())
    settings.validate_runtime_security()

    engine, session_factory = create_engine(settings)
    app.state.engine = engine
    app.state.session_factory = session_factory

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    await engine.dispose()


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with a temporary database."""
    db_path = tmp_path / "test.db"
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=True,
        database_url=f"sqlite+aiosqlite:///{db_path}",
    )


@pytest.fixture
def fake_catalog() -> FakeCatalogClient:
    catalog = FakeCatalogClient()
    catalog.add_channel()
    return catalog


@pytest.fixture
async def db_engine_and_factory(
    test_settings: Settings,
) -> AsyncGenerator[tuple[AsyncEngine, async_sessionmaker[AsyncSession]]]:
    engine, session_factory = create_engine(test_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine, session_factory
    await engine.dispose()


@pytest.fixture
def db_engine(
    db_engine_and_factory: tuple[AsyncEngine, async_sessionmaker[AsyncSession]],
) -> AsyncEngine:
    """Create a test database engine with the schema in place."""
    return db_engine_and_factory[0]


@pytest.fixture
def session_factory(
    db_engine_and_factory: tuple[AsyncEngine, async_sessionmaker[AsyncSession]],
) -> async_sessionmaker[AsyncSession]:
    return db_engine_and_factory[1]


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session

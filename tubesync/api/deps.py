"""Shared API dependencies: settings, DB session, catalog client, sync locks."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tubesync.config import Settings
from tubesync.services.sync_service import ChannelLockRegistry
from tubesync.youtube.base import CatalogClient


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Get the session factory, for work that spans several transactions."""
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    return session_factory


async def get_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """Get a database session."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


def get_catalog_client(request: Request) -> CatalogClient:
    """Get the YouTube catalog client from app state."""
    client: CatalogClient = request.app.state.catalog_client
    return client


def get_channel_locks(request: Request) -> ChannelLockRegistry:
    """Get the per-channel sync lock registry from app state."""
    locks: ChannelLockRegistry = request.app.state.channel_locks
    return locks

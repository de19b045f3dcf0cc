"""SQLAlchemy ORM models for TubeSync."""

from tubesync.models.base import Base
from tubesync.models.channel import Channel
from tubesync.models.playlist import Playlist, VideoPlaylist
from tubesync.models.reply import Reply, ReplyStatus
from tubesync.models.video import GeoLocation, Video, VideoVisibility

__all__ = [
    "Base",
    "Channel",
    "GeoLocation",
    "Playlist",
    "Reply",
    "ReplyStatus",
    "Video",
    "VideoPlaylist",
    "VideoVisibility",
]

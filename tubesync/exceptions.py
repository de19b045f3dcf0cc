"""Application-level exception types.

Convention:
- ``InternalServerError``: for errors whose details must never reach clients.
  The global handler logs the full message at ERROR and returns a generic
  "Internal server error" (500) to the client.
- ``SyncPreconditionError`` and its subclass ``ChannelNotFoundError``: a sync
  run cannot start (unknown channel, channel without an uploads feed). Raised
  before any remote call and never retried internally; retry policy belongs to
  whoever triggered the sync.
- ``InvalidPageTokenError`` / ``InvalidPageSizeError``: malformed listing
  input. Always a client error, never a server fault.
"""

from __future__ import annotations


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients."""


class SyncPreconditionError(Exception):
    """Raised when a channel sync cannot run with the stored channel state."""


class ChannelNotFoundError(SyncPreconditionError):
    """Raised when the requested channel is not registered (locally or remotely)."""

    def __init__(self, channel_id: str) -> None:
        super().__init__(f"Channel not found: {channel_id}")
        self.channel_id = channel_id


class SyncInProgressError(Exception):
    """Raised when a sync for the same channel is already running."""

    def __init__(self, channel_id: str) -> None:
        super().__init__(f"A sync for channel {channel_id} is already running")
        self.channel_id = channel_id


class InvalidPageTokenError(Exception):
    """Raised when a page token is malformed or bound to different filters."""

    def __init__(self, message: str = "Page token is invalid or malformed.") -> None:
        super().__init__(message)


class InvalidPageSizeError(Exception):
    """Raised when a requested page size is outside the allowed range."""

    def __init__(self, page_size: int, max_page_size: int) -> None:
        super().__init__(f"Page size must be between 1 and {max_page_size}. Provided: {page_size}")
        self.page_size = page_size
        self.max_page_size = max_page_size

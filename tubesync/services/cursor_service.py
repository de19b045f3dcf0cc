"""Opaque pagination cursors.

A cursor is ``(ordering_key, tie_break_id, binding)``. The payload
``<iso timestamp>|<tie_break_id>[|<binding>]`` is UTF-8 encoded and wrapped in
URL-safe base64 without padding, so the token can go into a query string as is.
The binding is free-form and may itself contain ``|``; decoding splits into at
most three fields.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from datetime import UTC, datetime

from tubesync.exceptions import InvalidPageSizeError, InvalidPageTokenError

SEPARATOR = "|"
_TOKEN_RE = re.compile(r"[A-Za-z0-9_-]+")


@dataclass(frozen=True)
class Cursor:
    """Decoded position in a listing ordered by ``(ordering_key, tie_break_id)``."""

    ordering_key: datetime
    tie_break_id: str
    binding: str | None = None


def encode_cursor(ordering_key: datetime, tie_break_id: str, binding: str | None = None) -> str:
    """Encode a cursor into an opaque URL-safe token.

    Raises ValueError if ``tie_break_id`` is empty or contains the separator.
    """
    if not tie_break_id:
        msg = "tie_break_id must be a non-empty string"
        raise ValueError(msg)
    if SEPARATOR in tie_break_id:
        msg = f"tie_break_id must not contain {SEPARATOR!r}"
        raise ValueError(msg)

    payload = f"{ordering_key.isoformat()}{SEPARATOR}{tie_break_id}"
    if binding is not None:
        payload = f"{payload}{SEPARATOR}{binding}"
    raw = base64.urlsafe_b64encode(payload.encode("utf-8"))
    return raw.decode("ascii").rstrip("=")


def decode_cursor(token: str | None) -> Cursor | None:
    """Decode a token produced by :func:`encode_cursor`.

    Returns None for anything that is not a well-formed token. Never raises.
    """
    if not isinstance(token, str) or not _TOKEN_RE.fullmatch(token):
        return None

    try:
        padded = token + "=" * (-len(token) % 4)
        raw = base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
        payload = raw.decode("utf-8")
    except (UnicodeError, binascii.Error, ValueError):
        return None

    parts = payload.split(SEPARATOR, 2)
    if len(parts) < 2:
        return None

    try:
        ordering_key = datetime.fromisoformat(parts[0])
        if ordering_key.tzinfo is not None:
            # Listings compare in UTC; reject offsets that push past datetime.min/max.
            ordering_key.astimezone(UTC)
    except (ValueError, OverflowError):
        return None

    tie_break_id = parts[1]
    if not tie_break_id:
        return None

    binding = parts[2] if len(parts) == 3 else None
    return Cursor(ordering_key=ordering_key, tie_break_id=tie_break_id, binding=binding)


def resolve_page_size(page_size: int | None, default: int, maximum: int) -> int:
    """Return the effective page size, or raise InvalidPageSizeError."""
    if page_size is None:
        return default
    if page_size < 1 or page_size > maximum:
        raise InvalidPageSizeError(page_size, maximum)
    return page_size


def resolve_page_token(page_token: str | None, binding: str) -> Cursor | None:
    """Decode a page token and check it was issued for the same filters.

    Returns None when no token was given. A token whose binding is set and
    differs from ``binding`` is rejected like a malformed one.
    """
    if page_token is None or page_token == "":
        return None
    cursor = decode_cursor(page_token)
    if cursor is None:
        raise InvalidPageTokenError
    if cursor.binding and cursor.binding != binding:
        raise InvalidPageTokenError("Page token does not match the current filters.")
    return cursor

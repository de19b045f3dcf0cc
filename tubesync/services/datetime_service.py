"""Datetime helpers: lax remote input -> strict timezone-aware UTC values."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pendulum


def parse_datetime(value: str | datetime, default_tz: str = "UTC") -> datetime:
    """Parse an RFC 3339 / ISO 8601 timestamp into an aware UTC datetime.

    Accepts what the YouTube Data API returns (``2024-05-01T12:00:00Z``,
    fractional seconds, explicit offsets) as well as date-only strings.
    Missing timezone defaults to default_tz.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            tz = pendulum.timezone(default_tz)
            value = value.replace(tzinfo=tz)  # type: ignore[arg-type]
        return ensure_utc(value)

    parsed = pendulum.parse(value.strip(), tz=default_tz, strict=False)
    if not isinstance(parsed, pendulum.DateTime):
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(
            parsed.year, parsed.month, parsed.day, tz=default_tz  # type: ignore[union-attr]
        )
    return ensure_utc(parsed)


def parse_duration(value: str | None) -> timedelta:
    """Parse an ISO 8601 duration such as ``PT1H2M3S``.

    Empty input and live-stream placeholders (``P0D``) yield a zero duration.
    Raises ValueError for anything pendulum cannot read as a duration.
    """
    if not value:
        return timedelta()
    parsed = pendulum.parse(value.strip())
    if not isinstance(parsed, pendulum.Duration):
        msg = f"Not an ISO 8601 duration: {value!r}"
        raise ValueError(msg)
    return timedelta(seconds=parsed.total_seconds())


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as a plain ``datetime`` in UTC. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    converted = dt.astimezone(UTC)
    return datetime(
        converted.year,
        converted.month,
        converted.day,
        converted.hour,
        converted.minute,
        converted.second,
        converted.microsecond,
        tzinfo=UTC,
    )


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(UTC)


def format_iso(dt: datetime) -> str:
    """Format datetime as ISO 8601 for JSON serialization."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.isoformat()

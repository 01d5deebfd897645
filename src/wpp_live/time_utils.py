"""Shared timestamp helpers."""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return current UTC time with second precision."""
    return datetime.now(UTC).replace(microsecond=0)


def local_time_str(value: datetime) -> str:
    """Wall-clock time in the local zone, as shown next to 'Updated:'."""
    return value.astimezone().strftime("%H:%M:%S")

"""
Timestamps are stored as naive UTC datetimes and rendered as ISO-8601
with a trailing "Z". Everything entering or leaving the API goes through
these helpers.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the stored form)."""
    return _as_naive_utc(datetime.now(timezone.utc))


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a request timestamp.

    Blank input gives None. A bare date ("2026-03-01") means midnight, a
    value without offset is taken as UTC, and "Z" or "+hh:mm" offsets are
    converted. Raises ValueError on anything else.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Render as "2026-03-01T08:00:00Z" (seconds precision); None stays None."""
    if dt is None:
        return None
    return _as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"

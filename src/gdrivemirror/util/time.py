"""Timestamps as exchanged with Drive (RFC 3339, always UTC)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_dt(dt: datetime) -> datetime:
    """Reject naive datetimes; Drive timestamps always carry an offset."""
    if not isinstance(dt, datetime):
        raise TypeError("dt must be a datetime")
    if dt.tzinfo is None:
        raise ValueError("naive datetime is not allowed; timezone-aware required")
    return dt


def parse_rfc3339(value: str) -> datetime:
    """
    Parse Drive's ``createdTime``/``modifiedTime`` values.

    Drive sends ``2025-01-01T12:34:56.123Z``; explicit offsets are accepted
    too. The result is converted to UTC.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("RFC3339 value must be a non-empty string")

    text = value.strip()
    if text[-1] in "Zz":
        # fromisoformat only understands "Z" from 3.11 on.
        text = text[:-1] + "+00:00"
    return normalize_dt(datetime.fromisoformat(text)).astimezone(timezone.utc)


def parse_rfc3339_or_none(value: object) -> Optional[datetime]:
    """Lenient variant for remote payloads: missing or malformed values become None."""
    if not isinstance(value, str):
        return None
    try:
        return parse_rfc3339(value)
    except ValueError:
        return None


def to_rfc3339(dt: datetime) -> str:
    """UTC RFC 3339 with microseconds and a trailing 'Z'."""
    utc = normalize_dt(dt).astimezone(timezone.utc)
    return utc.replace(tzinfo=None).isoformat(timespec="microseconds") + "Z"

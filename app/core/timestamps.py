from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Render a datetime the way documents store it: UTC, milliseconds, ``Z`` suffix."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: Any) -> datetime | None:
    """Parse a stored timestamp, returning ``None`` for missing or malformed values."""

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def next_timestamp(now: datetime, previous: Any) -> str:
    """Return ``now`` as ISO text, never earlier than ``previous``."""

    earlier = parse_iso(previous)
    if earlier is not None and earlier > now:
        return to_iso(earlier)
    return to_iso(now)

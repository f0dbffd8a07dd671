from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""

    return datetime.now(timezone.utc)


def parse_iso_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given.

    Accepts the trailing ``Z`` some JavaScript clients write. Returns ``None``
    for empty or unparsable input.
    """

    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["parse_iso_datetime", "utcnow"]

"""Timestamps are UTC-aware everywhere: in Postgres rows and in session payloads."""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_iso(iso_string: str) -> datetime:
    """
    Parse a timestamp written by datetime.isoformat() back to UTC.

    Session payloads in Valkey store their timestamps this way. A string
    without an offset is rejected rather than guessed at.

    Raises:
        ValueError: If the string is not ISO 8601 or carries no offset.
    """
    parsed = datetime.fromisoformat(iso_string)
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp has no UTC offset: {iso_string!r}")
    return parsed.astimezone(timezone.utc)

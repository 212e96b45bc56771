"""UTC timestamps for Drive metadata and store rows."""

from __future__ import annotations

from datetime import datetime, timezone

_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """
    Return dt in UTC.

    Naive values are taken to be UTC already; google-auth reports credential
    expiry that way.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_rfc3339(value: str) -> datetime:
    """Parse a Drive timestamp ("2025-01-01T12:34:56.789Z" or with an offset)."""
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ValueError("timestamp must be a non-empty string")
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp has no UTC offset: {value!r}")
    return parsed.astimezone(timezone.utc)


def to_rfc3339(dt: datetime) -> str:
    return as_utc(dt).strftime(_FORMAT)

"""Time utilities for database models."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from SQLite; convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def isoformat_utc(value: datetime | None) -> str | None:
    """Render a timestamp as ``YYYY-MM-DDTHH:MM:SS.mmmZ``, keeping None as None."""
    if value is None:
        return None
    rendered = ensure_utc(value).isoformat(timespec="milliseconds")
    return rendered.replace("+00:00", "Z")

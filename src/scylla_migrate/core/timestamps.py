"""
UTC timestamp helpers.

The engine stamps ledger records with a UTC datetime captured once per
pass; scaffolding names directories after local wall-clock time so ids read
naturally to whoever created them.
"""

from datetime import UTC, datetime

# Directory-name prefix for new migrations: sorts lexicographically by time
MIGRATION_ID_FORMAT = "%Y-%m-%d-%H%M%S"


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def local_now() -> datetime:
    """Get current local datetime (timezone-aware)."""
    return datetime.now().astimezone()


def to_iso8601(dt: datetime | None) -> str | None:
    """Convert datetime to ISO 8601 string."""
    if dt is None:
        return None
    return dt.isoformat()


def from_iso8601(s: str | None) -> datetime | None:
    """Parse ISO 8601 string to datetime."""
    if s is None:
        return None
    return datetime.fromisoformat(s)


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (drivers return naive UTC values)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)

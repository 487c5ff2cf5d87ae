"""Wall-clock helpers.

All timestamps are timezone-aware UTC. Storage backends may hand datetimes
back without tzinfo, so comparisons go through ``as_utc`` first.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)

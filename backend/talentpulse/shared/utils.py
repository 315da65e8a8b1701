"""Shared utility functions used across components."""

import uuid
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Return datetime as timezone-aware UTC. Returns None if input is None."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def new_uuid() -> str:
    return str(uuid.uuid4())


def mean(values) -> float | None:
    """Arithmetic mean, or None for an empty sequence."""
    values = list(values)
    if not values:
        return None
    return sum(values) / len(values)

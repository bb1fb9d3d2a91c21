from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing ``Z`` is accepted and dropped."""
    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1]
    parsed = datetime.fromisoformat(v)
    # Stored timestamps are naive local time.
    return parsed.replace(tzinfo=None)


def parse_clock(value: str) -> Optional[time]:
    """Parse ``HH:MM`` or ``HH:MM:SS``; returns None for anything else."""
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    return None


def isoformat_or_none(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()

"""
Module 04 - Epochs
File: weeks.py

Purpose: ISO week keys ("2026-W03") identifying reward periods.
Weeks start Monday 00:00 UTC.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

_WEEK_KEY_RE = re.compile(r"^(\d{4})-W(\d{2})$")


def week_key(when: Optional[datetime] = None) -> str:
    """ISO week key for a moment (defaults to now, UTC)."""
    when = when or datetime.now(timezone.utc)
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc)
    year, week, _ = when.isocalendar()
    return f"{year}-W{week:02d}"


def parse_week_key(key: str) -> tuple[int, int]:
    """
    Split a week key into (iso_year, iso_week).

    Raises:
        ValueError: If the key is malformed or the week does not exist
    """
    match = _WEEK_KEY_RE.match(key or "")
    if not match:
        raise ValueError(f"Invalid week key: {key!r} (expected YYYY-Www)")
    year, week = int(match.group(1)), int(match.group(2))
    try:
        date.fromisocalendar(year, week, 1)
    except ValueError as e:
        raise ValueError(f"Invalid week key: {key!r}: {e}") from e
    return year, week


def week_start(key: str) -> datetime:
    """Monday 00:00 UTC of the week."""
    year, week = parse_week_key(key)
    monday = date.fromisocalendar(year, week, 1)
    return datetime(monday.year, monday.month, monday.day, tzinfo=timezone.utc)


def week_end(key: str) -> datetime:
    """Exclusive end of the week (next Monday 00:00 UTC)."""
    return week_start(key) + timedelta(days=7)


def previous_week_key(key: Optional[str] = None) -> str:
    """Week key before ``key`` (or before the current week)."""
    start = week_start(key) if key else week_start(week_key())
    return week_key(start - timedelta(days=1))


def utc_now() -> datetime:
    """Current time, timezone-aware UTC. Default clock for the engine."""
    return datetime.now(timezone.utc)

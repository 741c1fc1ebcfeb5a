# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the learner progress engine.

This module provides standardized datetime operations to ensure consistency
across the entire codebase. All datetime operations should use these utilities.

Design Decisions:
-----------------
1. All timestamps are stored in UTC (PostgreSQL TIMESTAMPTZ)
2. All Python datetimes are timezone-aware (with timezone.utc)
3. Calendar questions ("today", weekday, hour of day) are answered in a
   single configured report timezone
4. Business functions receive "now" as an argument; only the service
   facade calls utc_now()

Usage:
------
    from src.utils.datetime import local_date, utc_now

    now = utc_now()
    today = local_date(now, tz)
"""

from datetime import date, datetime, timedelta, timezone, tzinfo


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.

    Example:
        >>> now = utc_now()
        >>> now.tzinfo
        datetime.timezone.utc
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    # Already aware - convert to UTC
    return dt.astimezone(timezone.utc)


def to_local(dt: datetime, tz: tzinfo) -> datetime:
    """Convert a datetime to the given timezone.

    Naive datetimes are treated as UTC first.

    Args:
        dt: Datetime to convert.
        tz: Target timezone.

    Returns:
        Timezone-aware datetime in tz.
    """
    return ensure_utc(dt).astimezone(tz)


def local_date(dt: datetime, tz: tzinfo) -> date:
    """Get the calendar date of a datetime in the given timezone.

    Args:
        dt: Datetime to truncate.
        tz: Timezone whose calendar is used.

    Returns:
        Calendar date in tz.

    Example:
        >>> local_date(datetime(2025, 3, 1, 23, 30, tzinfo=timezone.utc), ZoneInfo("Europe/Berlin"))
        datetime.date(2025, 3, 2)
    """
    return to_local(dt, tz).date()


def is_weekend(day: date) -> bool:
    """Check whether a calendar date is a Saturday or Sunday."""
    return day.weekday() >= 5


def most_recent_saturday(day: date) -> date:
    """Get the Saturday that starts the weekend on or before a date.

    Args:
        day: Reference date.

    Returns:
        The most recent Saturday (day itself if it is a Saturday,
        the previous day if it is a Sunday).
    """
    # Monday=0 ... Saturday=5, Sunday=6
    return day - timedelta(days=(day.weekday() - 5) % 7)


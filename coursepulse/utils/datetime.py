# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for CoursePulse.

All instants handled by the reporting core are timezone-aware UTC
datetimes. Raw records may carry naive datetimes, epoch seconds or
ISO-like text; these helpers convert each of them into an aware instant.

Usage:
------
    from coursepulse.utils.datetime import ensure_utc, parse_iso

    created = parse_iso("2024-09-01T08:00:00Z")
"""

from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def utc_from_timestamp(timestamp: float) -> datetime:
    """Create a timezone-aware UTC datetime from a Unix timestamp.

    Args:
        timestamp: Unix timestamp (seconds since epoch).

    Returns:
        Timezone-aware UTC datetime.

    Example:
        >>> utc_from_timestamp(1703145600).isoformat()
        '2023-12-21T08:00:00+00:00'
    """
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    """Get midnight UTC for a calendar date."""
    return datetime.combine(day, time.min).replace(tzinfo=timezone.utc)


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: Datetime to format.

    Returns:
        ISO 8601 formatted string or None.
    """
    if dt is None:
        return None

    return ensure_utc(dt).isoformat()


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime or date string.

    A bare date ("2024-09-01") resolves to midnight UTC.

    Args:
        iso_string: ISO 8601 formatted string.

    Returns:
        Timezone-aware UTC datetime or None.

    Raises:
        ValueError: If the string is not ISO 8601.
    """
    if iso_string is None:
        return None

    text = iso_string.strip()
    dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    return ensure_utc(dt)

"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp."""
    return dt.datetime.now(dt.UTC)


def format_timestamp(value: dt.datetime) -> str:
    """Format a datetime as a human-readable UTC timestamp."""
    return value.astimezone(dt.UTC).strftime("%Y-%m-%d %H:%M UTC")

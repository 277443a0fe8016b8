"""Timestamp helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def json_utc_timestamp() -> str:
    """Return the current time in UTC as an RFC 3339 string."""
    return json_utc_timestamp_from_time(datetime.now(timezone.utc))


def json_utc_timestamp_from_time(moment: datetime) -> str:
    """Format a datetime as RFC 3339 in its own zone; naive values are taken as UTC."""
    if moment.tzinfo is None or moment.utcoffset() is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.replace(microsecond=0).isoformat()
    if moment.utcoffset() == timedelta(0):
        text = text[:-6] + "Z"
    return text
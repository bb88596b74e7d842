"""Digest schedule strings.

Formats (all times UTC)
───────────────────────
  daily:HH:MM               e.g. ``daily:08:00``
  weekly:<dayname>:HH:MM    e.g. ``weekly:monday:09:30``

An empty schedule means ``daily:08:00``.  A daily string whose time cannot be
parsed also falls back to 08:00.  A weekly string with an unknown day or a bad
time, or any other prefix, is never due.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from src.contracts.channel import DEFAULT_DIGEST_SCHEDULE

log = logging.getLogger(__name__)

_DEFAULT_HOUR, _DEFAULT_MINUTE = 8, 0

_WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def _parse_hm(hour: str, minute: str) -> tuple[int, int] | None:
    try:
        h, m = int(hour), int(minute)
    except ValueError:
        return None
    if not (0 <= h <= 23 and 0 <= m <= 59):
        return None
    return h, m


def is_due(schedule: str | None, last_sent: datetime | None, now: datetime) -> bool:
    """True once today's send time has passed and nothing was sent since it."""
    parts = ((schedule or "").strip().lower() or DEFAULT_DIGEST_SCHEDULE).split(":")
    kind = parts[0]

    if kind == "daily":
        hm = _parse_hm(parts[1], parts[2]) if len(parts) >= 3 else None
        hour, minute = hm or (_DEFAULT_HOUR, _DEFAULT_MINUTE)
    elif kind == "weekly":
        if len(parts) < 4 or parts[1] not in _WEEKDAYS:
            return False
        hm = _parse_hm(parts[2], parts[3])
        if hm is None:
            return False
        if now.weekday() != _WEEKDAYS[parts[1]]:
            return False
        hour, minute = hm
    else:
        log.debug("Unknown digest schedule %r", schedule)
        return False

    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if now < target:
        return False
    return last_sent is None or last_sent < target


def window_start(schedule: str | None, now: datetime) -> datetime:
    """Start of the period a digest covers: 7 days for weekly, 1 day otherwise."""
    if (schedule or "").strip().lower().startswith("weekly"):
        return now - timedelta(days=7)
    return now - timedelta(days=1)

"""UTC time helpers and the injectable clock used by the background loops."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Timezone-aware current UTC time. Default ``Clock`` everywhere."""
    return datetime.now(timezone.utc)


def parse_ts(iso: str) -> datetime:
    """Parse ISO-8601 (``Z`` suffix allowed); naive values are taken as UTC."""
    dt = datetime.fromisoformat(iso.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_ts(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

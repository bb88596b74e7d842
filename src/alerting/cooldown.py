"""Cooldown tracker — suppresses repeat alerts for the same (rule, device).

Keys look like ``"{rule_id}:{device_id|device_ip|global}"`` (see
``RuleEvaluator.cooldown_key``).  State lives in memory only; a restart
forgets every cooldown.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta

from src.shared.timeutil import Clock, utc_now

log = logging.getLogger(__name__)


class CooldownTracker:
    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._last_fired: dict[str, datetime] = {}

    def is_in_cooldown(self, key: str, cooldown_seconds: int) -> bool:
        """True while fewer than *cooldown_seconds* have passed since the last fire."""
        if cooldown_seconds <= 0:
            return False
        with self._lock:
            last = self._last_fired.get(key)
        if last is None:
            return False
        return (self._clock() - last).total_seconds() < cooldown_seconds

    def record_fired(self, key: str) -> None:
        now = self._clock()
        with self._lock:
            self._last_fired[key] = now

    def cleanup(self, max_age: timedelta) -> int:
        """Evict entries older than *max_age*; returns how many were removed."""
        cutoff = self._clock() - max_age
        with self._lock:
            stale = [k for k, ts in self._last_fired.items() if ts < cutoff]
            for k in stale:
                del self._last_fired[k]
        if stale:
            log.debug("Cooldown sweep evicted %d entries", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_fired)

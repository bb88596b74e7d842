"""In-process implementation of ``AlertRepository``.

Used by the CLI host and the test-suite.  Every read returns a deep copy and
every write stores one, so callers never share mutable objects with the store
(the same isolation a real database row gives).
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, TypeVar

from src.contracts import (
    AlertHistoryEntry,
    AlertIncident,
    AlertRule,
    AlertStatus,
    DeliveryChannel,
    Severity,
)
from src.shared.timeutil import Clock, utc_now

log = logging.getLogger(__name__)

T = TypeVar("T")


class InMemoryAlertRepository:
    """Thread-safe dict-backed store with auto-incrementing integer ids."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._rules: dict[int, AlertRule] = {}
        self._channels: dict[int, DeliveryChannel] = {}
        self._alerts: dict[int, AlertHistoryEntry] = {}
        self._incidents: dict[int, AlertIncident] = {}
        self._next_id = {"rule": 1, "channel": 1, "alert": 1, "incident": 1}

    @contextmanager
    def session(self) -> Iterator[InMemoryAlertRepository]:
        """Unit of work; a no-op scope for the in-memory store."""
        yield self

    # ── internals ────────────────────────────────────────────────────────

    def _insert(self, table: dict[int, T], kind: str, obj: T) -> int:
        with self._lock:
            obj_id = getattr(obj, "id", 0) or self._next_id[kind]
            self._next_id[kind] = max(self._next_id[kind], obj_id + 1)
            obj.id = obj_id  # type: ignore[attr-defined]
            table[obj_id] = copy.deepcopy(obj)
            return obj_id

    def _replace(self, table: dict[int, T], kind: str, obj: T) -> None:
        obj_id = getattr(obj, "id", 0)
        with self._lock:
            if obj_id not in table:
                raise KeyError(f"{kind} {obj_id} not found")
            table[obj_id] = copy.deepcopy(obj)

    def _get(self, table: dict[int, T], obj_id: int) -> T | None:
        with self._lock:
            obj = table.get(obj_id)
            return copy.deepcopy(obj) if obj is not None else None

    # ── rules ────────────────────────────────────────────────────────────

    def get_rules(self) -> list[AlertRule]:
        with self._lock:
            return [copy.deepcopy(r) for r in sorted(self._rules.values(), key=lambda r: r.id)]

    def get_enabled_rules(self) -> list[AlertRule]:
        return [r for r in self.get_rules() if r.enabled]

    def get_rule(self, rule_id: int) -> AlertRule | None:
        return self._get(self._rules, rule_id)

    def save_rule(self, rule: AlertRule) -> int:
        return self._insert(self._rules, "rule", rule)

    def update_rule(self, rule: AlertRule) -> None:
        rule.updated_at = self._clock()
        self._replace(self._rules, "rule", rule)

    def delete_rule(self, rule_id: int) -> None:
        with self._lock:
            self._rules.pop(rule_id, None)

    # ── channels ─────────────────────────────────────────────────────────

    def get_channels(self) -> list[DeliveryChannel]:
        with self._lock:
            return [copy.deepcopy(c) for c in sorted(self._channels.values(), key=lambda c: c.id)]

    def get_enabled_channels(self) -> list[DeliveryChannel]:
        return [c for c in self.get_channels() if c.enabled]

    def get_channel(self, channel_id: int) -> DeliveryChannel | None:
        return self._get(self._channels, channel_id)

    def save_channel(self, channel: DeliveryChannel) -> int:
        return self._insert(self._channels, "channel", channel)

    def update_channel(self, channel: DeliveryChannel) -> None:
        channel.updated_at = self._clock()
        self._replace(self._channels, "channel", channel)

    def delete_channel(self, channel_id: int) -> None:
        with self._lock:
            self._channels.pop(channel_id, None)

    # ── history ──────────────────────────────────────────────────────────

    def save_alert(self, entry: AlertHistoryEntry) -> int:
        return self._insert(self._alerts, "alert", entry)

    def update_alert(self, entry: AlertHistoryEntry) -> None:
        self._replace(self._alerts, "alert", entry)

    def get_alert(self, alert_id: int) -> AlertHistoryEntry | None:
        return self._get(self._alerts, alert_id)

    def get_active_alerts(self) -> list[AlertHistoryEntry]:
        with self._lock:
            active = [a for a in self._alerts.values() if a.status == AlertStatus.ACTIVE]
            active.sort(key=lambda a: a.triggered_at, reverse=True)
            return copy.deepcopy(active)

    def get_alert_history(
        self,
        limit: int = 100,
        source: str | None = None,
        min_severity: Severity | None = None,
    ) -> list[AlertHistoryEntry]:
        """Newest first, optionally filtered by source (case-insensitive) and severity."""
        with self._lock:
            rows = list(self._alerts.values())
        if source:
            rows = [a for a in rows if a.source.lower() == source.lower()]
        if min_severity is not None:
            rows = [a for a in rows if a.severity >= min_severity]
        rows.sort(key=lambda a: (a.triggered_at, a.id), reverse=True)
        return copy.deepcopy(rows[:limit])

    def get_alerts_since(self, since: datetime) -> list[AlertHistoryEntry]:
        """All alerts triggered at or after *since*, oldest first."""
        with self._lock:
            rows = [a for a in self._alerts.values() if a.triggered_at >= since]
            rows.sort(key=lambda a: (a.triggered_at, a.id))
            return copy.deepcopy(rows)

    def acknowledge_alert(self, alert_id: int) -> AlertHistoryEntry | None:
        with self._lock:
            entry = self._alerts.get(alert_id)
            if entry is None:
                return None
            entry.status = AlertStatus.ACKNOWLEDGED
            entry.acknowledged_at = self._clock()
            return copy.deepcopy(entry)

    def resolve_alert(self, alert_id: int) -> AlertHistoryEntry | None:
        with self._lock:
            entry = self._alerts.get(alert_id)
            if entry is None:
                return None
            entry.status = AlertStatus.RESOLVED
            entry.resolved_at = self._clock()
            return copy.deepcopy(entry)

    # ── incidents ────────────────────────────────────────────────────────

    def save_incident(self, incident: AlertIncident) -> int:
        return self._insert(self._incidents, "incident", incident)

    def update_incident(self, incident: AlertIncident) -> None:
        self._replace(self._incidents, "incident", incident)

    def get_active_incident_by_key(self, correlation_key: str) -> AlertIncident | None:
        """Most recently triggered active incident with this key."""
        with self._lock:
            matches = [
                i for i in self._incidents.values()
                if i.correlation_key == correlation_key and i.status == AlertStatus.ACTIVE
            ]
            if not matches:
                return None
            latest = max(matches, key=lambda i: (i.last_triggered_at, i.id))
            return copy.deepcopy(latest)

    def get_incidents(self, limit: int = 50) -> list[AlertIncident]:
        with self._lock:
            rows = sorted(self._incidents.values(), key=lambda i: (i.last_triggered_at, i.id), reverse=True)
            return copy.deepcopy(rows[:limit])

    def get_incident(self, incident_id: int) -> AlertIncident | None:
        return self._get(self._incidents, incident_id)

    def resolve_incident(self, incident_id: int) -> AlertIncident | None:
        with self._lock:
            incident = self._incidents.get(incident_id)
            if incident is None:
                return None
            incident.status = AlertStatus.RESOLVED
            incident.resolved_at = self._clock()
            log.debug("Resolved incident %d (%s)", incident_id, incident.correlation_key)
            return copy.deepcopy(incident)

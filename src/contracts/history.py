"""Alert history entry (one per rule match) and the digest summary built from many."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from src.contracts.enums import AlertStatus, Severity
from src.contracts.event import AlertEvent
from src.shared.timeutil import utc_now


@dataclass(slots=True)
class AlertHistoryEntry:
    """Persisted record of an alert that was triggered by a rule.

    Lifecycle
    ─────────
      created      — snapshot of the event + rule_id, saved immediately
      linked       — incident_id set by the correlator (optional)
      delivered    — delivered_to_channels / delivery_succeeded / delivery_error
    """

    id: int = 0
    event_type: str = ""
    severity: Severity = Severity.INFO
    status: AlertStatus = AlertStatus.ACTIVE
    source: str = ""
    title: str = ""
    message: str = ""
    device_id: str | None = None
    device_name: str | None = None
    device_ip: str | None = None
    rule_id: int | None = None
    incident_id: int | None = None
    context_json: str | None = None
    triggered_at: datetime = field(default_factory=utc_now)
    acknowledged_at: datetime | None = None
    resolved_at: datetime | None = None
    delivered_to_channels: str | None = None  # comma-separated channel ids
    delivery_succeeded: bool = False
    delivery_error: str | None = None

    @classmethod
    def from_event(cls, event: AlertEvent, rule_id: int, triggered_at: datetime) -> AlertHistoryEntry:
        return cls(
            event_type=event.event_type,
            severity=event.severity,
            source=event.source,
            title=event.title,
            message=event.message,
            device_id=event.device_id,
            device_name=event.device_name,
            device_ip=event.device_ip,
            rule_id=rule_id,
            triggered_at=triggered_at,
            context_json=json.dumps(event.context, ensure_ascii=False) if event.context else None,
        )

    def context(self) -> dict[str, str]:
        return json.loads(self.context_json) if self.context_json else {}


@dataclass(slots=True, frozen=True)
class DigestSummary:
    """Severity counts for a digest period (always over the uncollapsed set)."""

    total_count: int = 0
    critical_count: int = 0
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0

    @classmethod
    def from_entries(cls, entries: Iterable[AlertHistoryEntry]) -> DigestSummary:
        counts = {sev: 0 for sev in Severity}
        total = 0
        for e in entries:
            counts[e.severity] += 1
            total += 1
        return cls(
            total_count=total,
            critical_count=counts[Severity.CRITICAL],
            error_count=counts[Severity.ERROR],
            warning_count=counts[Severity.WARNING],
            info_count=counts[Severity.INFO],
        )

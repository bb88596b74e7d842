"""Incident data-class — a correlated group of alerts sharing a correlation key."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from src.contracts.enums import AlertStatus, Severity
from src.shared.timeutil import utc_now


@dataclass(slots=True)
class AlertIncident:
    """Aggregation root for alerts with the same correlation key.

    Invariants
    ──────────
      alert_count >= 1
      severity     = max severity of all grouped alerts (never downgraded)
      last_triggered_at - first_triggered_at only grows
    """

    id: int = 0
    title: str = ""
    correlation_key: str = ""   # "device:10.0.0.5" | "source:audit"
    severity: Severity = Severity.INFO
    status: AlertStatus = AlertStatus.ACTIVE
    alert_count: int = 1
    first_triggered_at: datetime = field(default_factory=utc_now)
    last_triggered_at: datetime = field(default_factory=utc_now)
    resolved_at: datetime | None = None

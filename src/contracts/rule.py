"""AlertRule — admin-managed rule deciding which events become alerts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.contracts.enums import Severity
from src.shared.timeutil import utc_now


@dataclass(slots=True)
class AlertRule:
    """Rule matched against every incoming AlertEvent.

    A rule with ``cooldown_seconds == 0`` never suppresses repeats.
    ``threshold_percent`` of None means the rule is not threshold-gated.
    ``escalation_*`` are stored for the admin UI; nothing evaluates them.
    """

    id: int = 0
    name: str = ""
    enabled: bool = True
    event_type_pattern: str = ""       # exact, "prefix.*", "*" or "" (= any)
    source: str | None = None          # None / "" = any source
    min_severity: Severity = Severity.WARNING
    cooldown_seconds: int = 300
    threshold_percent: float | None = None
    target_devices: str | None = None  # comma-separated device ids / IPs
    digest_only: bool = False
    escalation_minutes: int = 0
    escalation_severity: Severity = Severity.CRITICAL
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> AlertRule:
        """Build a rule from a rules.yaml entry."""
        threshold = row.get("threshold_percent")
        return cls(
            id=int(row.get("id", 0)),
            name=row.get("name", ""),
            enabled=bool(row.get("enabled", True)),
            event_type_pattern=row.get("event_type_pattern", row.get("pattern", "")) or "",
            source=row.get("source") or None,
            min_severity=Severity.parse(row.get("min_severity", "warning")),
            cooldown_seconds=int(row.get("cooldown_seconds", 300)),
            threshold_percent=float(threshold) if threshold is not None else None,
            target_devices=row.get("target_devices") or None,
            digest_only=bool(row.get("digest_only", False)),
            escalation_minutes=int(row.get("escalation_minutes", 0)),
            escalation_severity=Severity.parse(row.get("escalation_severity", "critical")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "event_type_pattern": self.event_type_pattern,
            "source": self.source,
            "min_severity": self.min_severity.label,
            "cooldown_seconds": self.cooldown_seconds,
            "threshold_percent": self.threshold_percent,
            "target_devices": self.target_devices,
            "digest_only": self.digest_only,
            "escalation_minutes": self.escalation_minutes,
            "escalation_severity": self.escalation_severity.label,
        }

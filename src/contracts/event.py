"""AlertEvent — what producers publish onto the event bus."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.contracts.enums import Severity
from src.shared.timeutil import format_ts, parse_ts, utc_now


@dataclass(slots=True)
class AlertEvent:
    """One domain event that may trigger alerts.

    ``event_type`` is dot-delimited (``audit.score_dropped``, ``device.offline``)
    so rules can match on a prefix.  ``context`` is a free-form string map;
    threshold rules read ``drop_percent`` / ``drop`` from it.
    """

    # ── mandatory ──
    event_type: str
    source: str             # producing module: audit | device | wan | threats …
    title: str
    severity: Severity = Severity.INFO

    # ── optional ──
    message: str = ""
    device_id: str | None = None      # MAC or IP
    device_name: str | None = None
    device_ip: str | None = None
    metric_value: float | None = None
    threshold_value: float | None = None
    context: dict[str, str] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utc_now)

    # ── serialisation ─────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type,
            "severity": self.severity.label,
            "source": self.source,
            "title": self.title,
            "message": self.message,
            "device_id": self.device_id,
            "device_name": self.device_name,
            "device_ip": self.device_ip,
            "metric_value": self.metric_value,
            "threshold_value": self.threshold_value,
            "context": dict(self.context),
            "tags": list(self.tags),
            "timestamp": format_ts(self.timestamp),
        }

    def to_json(self) -> str:
        """Return compact JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> AlertEvent:
        """Build an event from a JSON object; ``event_type``/``source``/``title`` are required."""
        ts = row.get("timestamp")
        context = row.get("context") or {}
        return cls(
            event_type=row["event_type"],
            source=row["source"],
            title=row["title"],
            severity=Severity.parse(row.get("severity", "info")),
            message=row.get("message", "") or "",
            device_id=row.get("device_id") or None,
            device_name=row.get("device_name") or None,
            device_ip=row.get("device_ip") or None,
            metric_value=_opt_float(row.get("metric_value")),
            threshold_value=_opt_float(row.get("threshold_value")),
            context={str(k): str(v) for k, v in context.items()},
            tags=[str(t) for t in row.get("tags") or []],
            timestamp=parse_ts(ts) if ts else utc_now(),
        )


def _opt_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)

"""DeliveryChannel — a configured notification sink (SMTP server, webhook URL …)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.contracts.enums import ChannelType, Severity
from src.shared.timeutil import utc_now

log = logging.getLogger(__name__)

DEFAULT_DIGEST_SCHEDULE = "daily:08:00"


@dataclass(slots=True)
class DeliveryChannel:
    """Admin-managed channel row.

    ``config_json`` is opaque to the pipeline; only the handler registered for
    ``channel_type`` interprets it.  Secrets inside it are stored encrypted.
    """

    id: int = 0
    name: str = ""
    enabled: bool = True
    channel_type: ChannelType = ChannelType.LOG
    config_json: str = "{}"
    min_severity: Severity = Severity.WARNING
    digest_enabled: bool = False
    digest_schedule: str | None = None   # "daily:HH:MM" | "weekly:<day>:HH:MM"
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None

    def config(self) -> dict[str, Any]:
        """Decode ``config_json``; malformed JSON yields an empty dict."""
        try:
            data = json.loads(self.config_json or "{}")
        except json.JSONDecodeError as exc:
            log.warning("Channel %s (%s) has malformed config: %s", self.id, self.name, exc)
            return {}
        return data if isinstance(data, dict) else {}

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> DeliveryChannel:
        """Build a channel from a channels.yaml entry.

        ``config`` may be given as a mapping (serialised here) or as a
        ready ``config_json`` string.
        """
        cfg = row.get("config")
        config_json = json.dumps(cfg) if isinstance(cfg, dict) else row.get("config_json", "{}")
        try:
            ctype = ChannelType(str(row.get("channel_type", "log")).lower())
        except ValueError:
            raise ValueError(f"Unknown channel type: {row.get('channel_type')!r}") from None
        return cls(
            id=int(row.get("id", 0)),
            name=row.get("name", ""),
            enabled=bool(row.get("enabled", True)),
            channel_type=ctype,
            config_json=config_json,
            min_severity=Severity.parse(row.get("min_severity", "warning")),
            digest_enabled=bool(row.get("digest_enabled", False)),
            digest_schedule=row.get("digest_schedule") or None,
        )

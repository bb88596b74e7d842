"""Store interface consumed by the pipeline and the digest summarizer.

The production storage engine lives outside this package; anything that
satisfies ``AlertRepository`` can be plugged in.  Store access is scoped to a
single event or a single digest tick through a ``RepositoryFactory``: a
zero-argument callable returning a context manager that yields a repository.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Callable, Protocol, runtime_checkable

from src.contracts import (
    AlertHistoryEntry,
    AlertIncident,
    AlertRule,
    DeliveryChannel,
    Severity,
)


@runtime_checkable
class AlertRepository(Protocol):
    """Rules, delivery channels, alert history and incidents."""

    # --- rules ---
    def get_rules(self) -> list[AlertRule]: ...
    def get_enabled_rules(self) -> list[AlertRule]: ...
    def get_rule(self, rule_id: int) -> AlertRule | None: ...
    def save_rule(self, rule: AlertRule) -> int: ...
    def update_rule(self, rule: AlertRule) -> None: ...
    def delete_rule(self, rule_id: int) -> None: ...

    # --- channels ---
    def get_channels(self) -> list[DeliveryChannel]: ...
    def get_enabled_channels(self) -> list[DeliveryChannel]: ...
    def get_channel(self, channel_id: int) -> DeliveryChannel | None: ...
    def save_channel(self, channel: DeliveryChannel) -> int: ...
    def update_channel(self, channel: DeliveryChannel) -> None: ...
    def delete_channel(self, channel_id: int) -> None: ...

    # --- history ---
    def save_alert(self, entry: AlertHistoryEntry) -> int: ...
    def update_alert(self, entry: AlertHistoryEntry) -> None: ...
    def get_alert(self, alert_id: int) -> AlertHistoryEntry | None: ...
    def get_active_alerts(self) -> list[AlertHistoryEntry]: ...
    def get_alert_history(
        self,
        limit: int = 100,
        source: str | None = None,
        min_severity: Severity | None = None,
    ) -> list[AlertHistoryEntry]: ...
    def get_alerts_since(self, since: datetime) -> list[AlertHistoryEntry]: ...

    # --- incidents ---
    def save_incident(self, incident: AlertIncident) -> int: ...
    def update_incident(self, incident: AlertIncident) -> None: ...
    def get_active_incident_by_key(self, correlation_key: str) -> AlertIncident | None: ...
    def get_incidents(self, limit: int = 50) -> list[AlertIncident]: ...
    def get_incident(self, incident_id: int) -> AlertIncident | None: ...


RepositoryFactory = Callable[[], AbstractContextManager[AlertRepository]]

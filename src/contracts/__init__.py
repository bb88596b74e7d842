"""Alerting contracts — canonical data structures shared by all modules."""

from src.contracts.channel import DeliveryChannel
from src.contracts.enums import AlertStatus, ChannelType, Severity
from src.contracts.event import AlertEvent
from src.contracts.history import AlertHistoryEntry, DigestSummary
from src.contracts.incident import AlertIncident
from src.contracts.rule import AlertRule

__all__ = [
    "AlertEvent",
    "AlertHistoryEntry",
    "AlertIncident",
    "AlertRule",
    "AlertStatus",
    "ChannelType",
    "DeliveryChannel",
    "DigestSummary",
    "Severity",
]

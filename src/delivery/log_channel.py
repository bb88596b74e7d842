"""Log sink — writes alerts and digests to a logger instead of a network target."""

from __future__ import annotations

import logging

from src.contracts import (
    AlertEvent,
    AlertHistoryEntry,
    ChannelType,
    DeliveryChannel,
    DigestSummary,
    Severity,
)
from src.delivery.base import DeliveryChannelHandler

log = logging.getLogger(__name__)

_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.CRITICAL: logging.CRITICAL,
}


class LogDeliveryChannel(DeliveryChannelHandler):
    channel_type = ChannelType.LOG

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or log

    def send(self, event: AlertEvent, entry: AlertHistoryEntry, channel: DeliveryChannel) -> bool:
        device = event.device_name or event.device_ip or event.device_id or "-"
        self._log.log(
            _LEVELS[event.severity],
            "[%s] %s | %s | device=%s | alert=%d | %s",
            channel.name, event.severity.label.upper(), event.title, device, entry.id, event.message,
        )
        return True

    def send_digest(
        self,
        entries: list[AlertHistoryEntry],
        channel: DeliveryChannel,
        summary: DigestSummary,
    ) -> bool:
        self._log.info(
            "[%s] Digest: %d alerts (critical=%d error=%d warning=%d info=%d)",
            channel.name, summary.total_count, summary.critical_count,
            summary.error_count, summary.warning_count, summary.info_count,
        )
        for e in entries:
            self._log.info("[%s]   %-8s %-10s %s", channel.name, e.severity.label, e.source, e.title)
        return True

    def test(self, channel: DeliveryChannel) -> tuple[bool, str | None]:
        self._log.info("[%s] Test notification", channel.name)
        return True, None

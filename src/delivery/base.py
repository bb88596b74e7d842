"""Delivery channel capability — one handler per channel type tag."""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.contracts import (
    AlertEvent,
    AlertHistoryEntry,
    ChannelType,
    DeliveryChannel,
    DigestSummary,
)


class DeliveryChannelHandler(ABC):
    """Sends alerts to one kind of external sink.

    The same handler instance serves every configured channel of its type;
    per-channel settings come from ``channel.config()``.  ``send`` and
    ``send_digest`` return False for a clean failure and may raise for an
    unexpected one; callers treat both as "not delivered".
    """

    channel_type: ChannelType

    @abstractmethod
    def send(self, event: AlertEvent, entry: AlertHistoryEntry, channel: DeliveryChannel) -> bool:
        ...

    @abstractmethod
    def send_digest(
        self,
        entries: list[AlertHistoryEntry],
        channel: DeliveryChannel,
        summary: DigestSummary,
    ) -> bool:
        ...

    def test(self, channel: DeliveryChannel) -> tuple[bool, str | None]:
        """Send a test notification; returns ``(ok, error message)``."""
        return False, f"Test not supported for {self.channel_type.value} channels"

    def close(self) -> None:
        """Release resources held by the handler (connection pools and the like)."""

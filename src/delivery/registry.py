"""Handler lookup by channel type."""

from __future__ import annotations

import logging

from src.contracts import ChannelType
from src.delivery.base import DeliveryChannelHandler

log = logging.getLogger(__name__)


class ChannelRegistry:
    def __init__(self, handlers: list[DeliveryChannelHandler] | None = None) -> None:
        self._handlers: dict[ChannelType, DeliveryChannelHandler] = {}
        for h in handlers or []:
            self.register(h)

    def register(self, handler: DeliveryChannelHandler) -> None:
        if handler.channel_type in self._handlers:
            log.warning("Replacing handler for channel type %s", handler.channel_type.value)
        self._handlers[handler.channel_type] = handler

    def get(self, channel_type: ChannelType | str) -> DeliveryChannelHandler | None:
        try:
            return self._handlers.get(ChannelType(channel_type))
        except ValueError:
            return None

    def __contains__(self, channel_type: object) -> bool:
        return isinstance(channel_type, (str, ChannelType)) and self.get(channel_type) is not None

    def types(self) -> list[ChannelType]:
        return list(self._handlers)

    def close(self) -> None:
        for handler in self._handlers.values():
            try:
                handler.close()
            except Exception:
                log.exception("Failed to close %s handler", handler.channel_type.value)

"""Delivery — channel handler contract, registry and reference sinks.

Modules
───────
  base        — DeliveryChannelHandler ABC
  registry    — ChannelRegistry (channel type → handler)
  log_channel — LogDeliveryChannel
  webhook     — WebhookDeliveryChannel (httpx, HMAC-signed)
"""

from src.delivery.base import DeliveryChannelHandler
from src.delivery.log_channel import LogDeliveryChannel
from src.delivery.registry import ChannelRegistry
from src.delivery.webhook import WebhookDeliveryChannel

__all__ = [
    "ChannelRegistry",
    "DeliveryChannelHandler",
    "LogDeliveryChannel",
    "WebhookDeliveryChannel",
]

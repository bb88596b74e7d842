"""Generic webhook sink — POSTs JSON to a configured URL.

Channel config (``config_json``)::

    {"url": "https://hooks.example/alerts",
     "secret": "<fernet token or plaintext>",   # optional, HMAC signing
     "headers": {"Authorization": "Bearer …"}}  # optional

When a secret is present every request carries
``X-Signature-256: sha256=<hex HMAC-SHA256 of the body>``.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from typing import Any, Callable

import httpx

from src.contracts import (
    AlertEvent,
    AlertHistoryEntry,
    ChannelType,
    DeliveryChannel,
    DigestSummary,
)
from src.delivery.base import DeliveryChannelHandler
from src.shared.secrets import SecretBox
from src.shared.timeutil import utc_now

log = logging.getLogger(__name__)

MAX_RETRIES = 2
SIGNATURE_HEADER = "X-Signature-256"
DEFAULT_TIMEOUT = 10.0


def compute_signature(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


class WebhookDeliveryChannel(DeliveryChannelHandler):
    channel_type = ChannelType.WEBHOOK

    def __init__(
        self,
        client: httpx.Client | None = None,
        secrets: SecretBox | None = None,
        sleep: Callable[[float], None] = time.sleep,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._client = client or httpx.Client(timeout=timeout)
        self._secrets = secrets or SecretBox()
        self._sleep = sleep

    def close(self) -> None:
        self._client.close()

    # ── payloads ─────────────────────────────────────────────────────────

    @staticmethod
    def alert_payload(event: AlertEvent, entry: AlertHistoryEntry) -> dict[str, Any]:
        return {
            "event_type": event.event_type,
            "severity": event.severity.label,
            "source": event.source,
            "title": event.title,
            "message": event.message,
            "device_id": event.device_id,
            "device_name": event.device_name,
            "device_ip": event.device_ip,
            "metric_value": event.metric_value,
            "threshold_value": event.threshold_value,
            "context": dict(event.context),
            "tags": list(event.tags),
            "timestamp": event.timestamp.isoformat(),
            "alert_id": entry.id,
        }

    @staticmethod
    def digest_payload(entries: list[AlertHistoryEntry], summary: DigestSummary) -> dict[str, Any]:
        return {
            "type": "digest",
            "total_count": summary.total_count,
            "critical_count": summary.critical_count,
            "error_count": summary.error_count,
            "warning_count": summary.warning_count,
            "info_count": summary.info_count,
            "alerts": [
                {
                    "title": e.title,
                    "severity": e.severity.label,
                    "source": e.source,
                    "triggered_at": e.triggered_at.isoformat(),
                }
                for e in entries
            ],
            "generated_at": utc_now().isoformat(),
        }

    # ── DeliveryChannelHandler ───────────────────────────────────────────

    def send(self, event: AlertEvent, entry: AlertHistoryEntry, channel: DeliveryChannel) -> bool:
        config = channel.config()
        if not config.get("url"):
            log.warning("Webhook channel %d (%s) has no url", channel.id, channel.name)
            return False
        return self._post_with_retry(config, self.alert_payload(event, entry))

    def send_digest(
        self,
        entries: list[AlertHistoryEntry],
        channel: DeliveryChannel,
        summary: DigestSummary,
    ) -> bool:
        config = channel.config()
        if not config.get("url"):
            log.warning("Webhook channel %d (%s) has no url", channel.id, channel.name)
            return False
        return self._post_with_retry(config, self.digest_payload(entries, summary))

    def test(self, channel: DeliveryChannel) -> tuple[bool, str | None]:
        config = channel.config()
        if not config.get("url"):
            return False, "Invalid channel configuration"
        payload = {
            "type": "test",
            "title": "Alerting - Test Alert",
            "message": "This is a test webhook from the alerting pipeline.",
            "timestamp": utc_now().isoformat(),
        }
        if self._post_with_retry(config, payload):
            return True, None
        return False, "Webhook POST failed"

    # ── transport ────────────────────────────────────────────────────────

    def _build_headers(self, config: dict[str, Any], body: bytes) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        for name, value in (config.get("headers") or {}).items():
            headers[str(name)] = str(value)
        secret = config.get("secret")
        if secret:
            plain = self._secrets.decrypt(secret)
            headers[SIGNATURE_HEADER] = f"sha256={compute_signature(body, plain)}"
        return headers

    def _post_with_retry(self, config: dict[str, Any], payload: dict[str, Any]) -> bool:
        """POST with up to ``MAX_RETRIES`` retries; back-off 2s, 4s."""
        url = config["url"]
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        headers = self._build_headers(config, body)

        for attempt in range(MAX_RETRIES + 1):
            try:
                response = self._client.post(url, content=body, headers=headers)
            except httpx.HTTPError as exc:
                if attempt >= MAX_RETRIES:
                    log.error("Webhook delivery to %s failed after %d attempts: %s",
                              url, MAX_RETRIES + 1, exc)
                    return False
                log.warning("Webhook attempt %d to %s failed, retrying: %s", attempt + 1, url, exc)
            else:
                if response.is_success:
                    log.debug("Webhook delivered to %s", url)
                    return True
                log.warning("Webhook POST to %s returned %d", url, response.status_code)
                if attempt >= MAX_RETRIES:
                    return False
            self._sleep(2 ** (attempt + 1))
        return False

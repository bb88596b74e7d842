"""Tests for src.delivery — registry, log sink, webhook sink (httpx.MockTransport)."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging

import httpx
from cryptography.fernet import Fernet

from src.contracts import ChannelType, DigestSummary, Severity
from src.delivery import ChannelRegistry, LogDeliveryChannel, WebhookDeliveryChannel
from src.shared.secrets import SecretBox
from tests.conftest import BASE_TIME, make_channel, make_entry, make_event

URL = "https://hooks.example/alerts"


class MockServer:
    """Collects requests and replies with a scripted sequence of responses."""

    def __init__(self, *responses: int | Exception) -> None:
        self.responses = list(responses) or [200]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, json={"ok": outcome < 300})


def _webhook(server: MockServer, secrets: SecretBox | None = None):
    sleeps: list[float] = []
    channel = WebhookDeliveryChannel(
        client=httpx.Client(transport=httpx.MockTransport(server)),
        secrets=secrets,
        sleep=sleeps.append,
    )
    return channel, sleeps


def _hook_channel(**config):
    config.setdefault("url", URL)
    return make_channel(id=3, name="hook", channel_type=ChannelType.WEBHOOK, config=config)


# ═══════════════════════════════════════════════════════════════════════════
#  Registry
# ═══════════════════════════════════════════════════════════════════════════


class TestRegistry:
    def test_lookup_by_enum_and_tag(self):
        log_ch = LogDeliveryChannel()
        reg = ChannelRegistry([log_ch])
        assert reg.get(ChannelType.LOG) is log_ch
        assert reg.get("log") is log_ch
        assert ChannelType.LOG in reg
        assert "webhook" not in reg
        assert reg.get("pager") is None

    def test_types(self):
        reg = ChannelRegistry([LogDeliveryChannel(), WebhookDeliveryChannel(client=httpx.Client())])
        assert set(reg.types()) == {ChannelType.LOG, ChannelType.WEBHOOK}

    def test_close_closes_every_handler(self):
        client = httpx.Client(transport=httpx.MockTransport(MockServer(200)))
        reg = ChannelRegistry([LogDeliveryChannel(), WebhookDeliveryChannel(client=client)])
        reg.close()
        assert client.is_closed


# ═══════════════════════════════════════════════════════════════════════════
#  Log sink
# ═══════════════════════════════════════════════════════════════════════════


class TestLogChannel:
    def test_send_logs_at_event_severity(self, caplog):
        ch = LogDeliveryChannel()
        with caplog.at_level(logging.INFO, logger="src.delivery.log_channel"):
            ok = ch.send(make_event(severity=Severity.ERROR, title="Switch offline"),
                         make_entry(id=5), make_channel(name="console"))
        assert ok
        rec = caplog.records[-1]
        assert rec.levelno == logging.ERROR
        assert "Switch offline" in rec.getMessage()

    def test_send_digest(self, caplog):
        ch = LogDeliveryChannel()
        entries = [make_entry(title="a"), make_entry(title="b")]
        with caplog.at_level(logging.INFO, logger="src.delivery.log_channel"):
            assert ch.send_digest(entries, make_channel(name="console"), DigestSummary.from_entries(entries))
        assert "2 alerts" in caplog.records[0].getMessage()

    def test_test_notification(self):
        assert LogDeliveryChannel().test(make_channel()) == (True, None)


# ═══════════════════════════════════════════════════════════════════════════
#  Webhook sink
# ═══════════════════════════════════════════════════════════════════════════


class TestWebhookPayloads:
    def test_alert_payload(self):
        server = MockServer(200)
        hook, _ = _webhook(server)
        ev = make_event(severity=Severity.CRITICAL, device_ip="10.0.0.5",
                        context={"port": "22"}, tags=["ssh"])
        entry = make_entry(id=42)
        assert hook.send(ev, entry, _hook_channel())

        body = json.loads(server.requests[0].content)
        assert body["severity"] == "critical"
        assert body["alert_id"] == 42
        assert body["device_ip"] == "10.0.0.5"
        assert body["context"] == {"port": "22"}
        assert body["tags"] == ["ssh"]
        assert body["timestamp"] == BASE_TIME.isoformat()
        assert server.requests[0].headers["content-type"] == "application/json"

    def test_digest_payload(self):
        server = MockServer(200)
        hook, _ = _webhook(server)
        entries = [make_entry(title="a", severity=Severity.ERROR), make_entry(title="b", severity=Severity.INFO)]
        assert hook.send_digest(entries, _hook_channel(), DigestSummary.from_entries(entries))

        body = json.loads(server.requests[0].content)
        assert body["type"] == "digest"
        assert body["total_count"] == 2
        assert body["error_count"] == 1
        assert body["info_count"] == 1
        assert [a["title"] for a in body["alerts"]] == ["a", "b"]
        assert body["alerts"][0]["severity"] == "error"
        assert "generated_at" in body

    def test_custom_headers(self):
        server = MockServer(200)
        hook, _ = _webhook(server)
        hook.send(make_event(), make_entry(), _hook_channel(headers={"X-Team": "netops"}))
        assert server.requests[0].headers["x-team"] == "netops"

    def test_missing_url_returns_false(self):
        server = MockServer(200)
        hook, _ = _webhook(server)
        ch = make_channel(channel_type=ChannelType.WEBHOOK, config={})
        assert not hook.send(make_event(), make_entry(), ch)
        assert server.requests == []


class TestWebhookSignature:
    def test_plaintext_secret(self):
        server = MockServer(200)
        hook, _ = _webhook(server)
        hook.send(make_event(), make_entry(), _hook_channel(secret="s3cret"))

        req = server.requests[0]
        expected = hmac.new(b"s3cret", req.content, hashlib.sha256).hexdigest()
        assert req.headers["X-Signature-256"] == f"sha256={expected}"

    def test_encrypted_secret_is_decrypted(self):
        key = Fernet.generate_key()
        box = SecretBox(key)
        server = MockServer(200)
        hook, _ = _webhook(server, secrets=box)
        hook.send(make_event(), make_entry(), _hook_channel(secret=box.encrypt("s3cret")))

        req = server.requests[0]
        expected = hmac.new(b"s3cret", req.content, hashlib.sha256).hexdigest()
        assert req.headers["X-Signature-256"] == f"sha256={expected}"

    def test_no_secret_no_header(self):
        server = MockServer(200)
        hook, _ = _webhook(server)
        hook.send(make_event(), make_entry(), _hook_channel())
        assert "X-Signature-256" not in server.requests[0].headers


class TestWebhookRetry:
    def test_retries_then_succeeds(self):
        server = MockServer(500, 502, 200)
        hook, sleeps = _webhook(server)
        assert hook.send(make_event(), make_entry(), _hook_channel())
        assert len(server.requests) == 3
        assert sleeps == [2, 4]

    def test_gives_up_after_three_attempts(self):
        server = MockServer(503)
        hook, sleeps = _webhook(server)
        assert not hook.send(make_event(), make_entry(), _hook_channel())
        assert len(server.requests) == 3
        assert sleeps == [2, 4]

    def test_transport_error_retried(self):
        server = MockServer(httpx.ConnectError("refused"), 200)
        hook, sleeps = _webhook(server)
        assert hook.send(make_event(), make_entry(), _hook_channel())
        assert sleeps == [2]

    def test_transport_error_exhausted(self):
        server = MockServer(httpx.ConnectError("refused"))
        hook, _ = _webhook(server)
        assert not hook.send(make_event(), make_entry(), _hook_channel())
        assert len(server.requests) == 3


class TestWebhookTest:
    def test_success(self):
        server = MockServer(200)
        hook, _ = _webhook(server)
        assert hook.test(_hook_channel()) == (True, None)
        assert json.loads(server.requests[0].content)["type"] == "test"

    def test_failure(self):
        hook, _ = _webhook(MockServer(404))
        assert hook.test(_hook_channel()) == (False, "Webhook POST failed")

    def test_invalid_config(self):
        hook, _ = _webhook(MockServer(200))
        ch = make_channel(channel_type=ChannelType.WEBHOOK, config={})
        assert hook.test(ch) == (False, "Invalid channel configuration")


class TestSecretBox:
    def test_passthrough_without_key(self):
        box = SecretBox()
        assert not box.enabled
        assert box.encrypt("x") == "x"
        assert box.decrypt("x") == "x"

    def test_round_trip(self):
        box = SecretBox(Fernet.generate_key())
        token = box.encrypt("hunter2")
        assert token != "hunter2"
        assert box.decrypt(token) == "hunter2"

    def test_plaintext_value_returned_as_is(self):
        assert SecretBox(Fernet.generate_key()).decrypt("not-a-token") == "not-a-token"

    def test_from_env(self, monkeypatch):
        key = Fernet.generate_key().decode()
        monkeypatch.setenv("ALERTING_SECRET_KEY", key)
        assert SecretBox.from_env().enabled
        monkeypatch.delenv("ALERTING_SECRET_KEY")
        assert not SecretBox.from_env().enabled

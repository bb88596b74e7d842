"""Shared fixtures for the alerting pipeline tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from src.contracts import (
    AlertEvent,
    AlertHistoryEntry,
    AlertRule,
    ChannelType,
    DeliveryChannel,
    DigestSummary,
    Severity,
)
from src.delivery.base import DeliveryChannelHandler
from src.delivery.registry import ChannelRegistry
from src.storage import InMemoryAlertRepository, InMemoryDigestStateStore

BASE_TIME = datetime(2026, 2, 26, 10, 0, 0, tzinfo=timezone.utc)


# ── Clock ────────────────────────────────────────────────────────────────


class FakeClock:
    """Manually advanced clock; call it to read, ``advance`` to move forward."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, when: datetime) -> None:
        self.now = when


def at(hour: int, minute: int = 0, day: int = 26, month: int = 2) -> datetime:
    """UTC instant in Feb 2026 (26 Feb 2026 is a Thursday)."""
    return datetime(2026, month, day, hour, minute, tzinfo=timezone.utc)


# ── Helper: contracts with sensible defaults ─────────────────────────────


def make_event(
    *,
    event_type: str = "device.offline",
    source: str = "device",
    title: str = "Switch offline",
    severity: Severity = Severity.ERROR,
    message: str = "",
    device_id: str | None = None,
    device_name: str | None = None,
    device_ip: str | None = None,
    context: dict[str, str] | None = None,
    tags: list[str] | None = None,
    timestamp: datetime = BASE_TIME,
) -> AlertEvent:
    return AlertEvent(
        event_type=event_type,
        source=source,
        title=title,
        severity=severity,
        message=message,
        device_id=device_id,
        device_name=device_name,
        device_ip=device_ip,
        context=context or {},
        tags=tags or [],
        timestamp=timestamp,
    )


def make_rule(
    *,
    id: int = 1,
    name: str = "Device Offline",
    enabled: bool = True,
    event_type_pattern: str = "device.offline",
    source: str | None = None,
    min_severity: Severity = Severity.WARNING,
    cooldown_seconds: int = 300,
    threshold_percent: float | None = None,
    target_devices: str | None = None,
    digest_only: bool = False,
) -> AlertRule:
    return AlertRule(
        id=id,
        name=name,
        enabled=enabled,
        event_type_pattern=event_type_pattern,
        source=source,
        min_severity=min_severity,
        cooldown_seconds=cooldown_seconds,
        threshold_percent=threshold_percent,
        target_devices=target_devices,
        digest_only=digest_only,
    )


def make_entry(
    *,
    id: int = 0,
    event_type: str = "device.offline",
    source: str = "device",
    title: str = "Switch offline",
    severity: Severity = Severity.WARNING,
    triggered_at: datetime = BASE_TIME,
    rule_id: int | None = 1,
) -> AlertHistoryEntry:
    return AlertHistoryEntry(
        id=id,
        event_type=event_type,
        source=source,
        title=title,
        severity=severity,
        triggered_at=triggered_at,
        rule_id=rule_id,
    )


def make_channel(
    *,
    id: int = 0,
    name: str = "ops",
    enabled: bool = True,
    channel_type: ChannelType = ChannelType.LOG,
    config: dict | None = None,
    min_severity: Severity = Severity.WARNING,
    digest_enabled: bool = False,
    digest_schedule: str | None = None,
) -> DeliveryChannel:
    return DeliveryChannel(
        id=id,
        name=name,
        enabled=enabled,
        channel_type=channel_type,
        config_json=json.dumps(config or {}),
        min_severity=min_severity,
        digest_enabled=digest_enabled,
        digest_schedule=digest_schedule,
    )


# ── Recording handler ────────────────────────────────────────────────────


class RecordingChannel(DeliveryChannelHandler):
    """Handler that records calls; ``result`` may be a bool or an exception to raise."""

    def __init__(self, channel_type: ChannelType = ChannelType.LOG, result: bool | Exception = True) -> None:
        self.channel_type = channel_type
        self.result = result
        self.sent: list[tuple[AlertEvent, AlertHistoryEntry, DeliveryChannel]] = []
        self.digests: list[tuple[list[AlertHistoryEntry], DeliveryChannel, DigestSummary]] = []
        self.closed = False

    def _outcome(self) -> bool:
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    def send(self, event, entry, channel) -> bool:
        self.sent.append((event, entry, channel))
        return self._outcome()

    def send_digest(self, entries, channel, summary) -> bool:
        self.digests.append((list(entries), channel, summary))
        return self._outcome()

    def close(self) -> None:
        self.closed = True


# ── Fixtures ─────────────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo(clock: FakeClock) -> InMemoryAlertRepository:
    return InMemoryAlertRepository(clock)


@pytest.fixture
def state_store() -> InMemoryDigestStateStore:
    return InMemoryDigestStateStore()


@pytest.fixture
def recorder() -> RecordingChannel:
    return RecordingChannel(ChannelType.LOG)


@pytest.fixture
def registry(recorder: RecordingChannel) -> ChannelRegistry:
    return ChannelRegistry([recorder])

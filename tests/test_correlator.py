"""Tests for src.alerting.correlator — alert-to-incident grouping."""

from __future__ import annotations

import pytest

from src.alerting.correlator import CorrelationEngine
from src.contracts import AlertHistoryEntry, AlertStatus, Severity
from tests.conftest import make_event

# ═══════════════════════════════════════════════════════════════════════════
#  correlation_key()
# ═══════════════════════════════════════════════════════════════════════════


class TestCorrelationKey:
    def test_device_ip_wins(self):
        ev = make_event(event_type="threats.ips_event", device_ip="10.0.0.5")
        assert CorrelationEngine.correlation_key(ev) == "device:10.0.0.5"

    def test_event_type_prefix(self):
        ev = make_event(event_type="threats.ips_event")
        assert CorrelationEngine.correlation_key(ev) == "source:threats"

    @pytest.mark.parametrize("event_type", ["nodot", ".leading", ""])
    def test_no_key(self, event_type):
        assert CorrelationEngine.correlation_key(make_event(event_type=event_type)) is None


# ═══════════════════════════════════════════════════════════════════════════
#  correlate()
# ═══════════════════════════════════════════════════════════════════════════


def _saved_entry(repo, event, clock) -> AlertHistoryEntry:
    entry = AlertHistoryEntry.from_event(event, rule_id=1, triggered_at=clock())
    entry.id = repo.save_alert(entry)
    return entry


class TestCorrelate:
    def test_first_alert_opens_incident(self, repo, clock):
        engine = CorrelationEngine(clock)
        ev = make_event(device_ip="10.0.0.5", severity=Severity.WARNING)
        entry = _saved_entry(repo, ev, clock)

        incident = engine.correlate(ev, entry, repo)

        assert incident is not None
        assert entry.incident_id == incident.id
        stored = repo.get_incident(incident.id)
        assert stored.correlation_key == "device:10.0.0.5"
        assert stored.alert_count == 1
        assert stored.title == ev.title
        assert stored.status == AlertStatus.ACTIVE
        assert stored.first_triggered_at == stored.last_triggered_at == clock()

    def test_same_device_within_window_joins(self, repo, clock):
        engine = CorrelationEngine(clock)
        ev1 = make_event(device_ip="10.0.0.5", severity=Severity.WARNING)
        first = engine.correlate(ev1, _saved_entry(repo, ev1, clock), repo)

        clock.advance(minutes=29)
        ev2 = make_event(event_type="threats.ips_event", device_ip="10.0.0.5",
                         severity=Severity.CRITICAL)
        entry2 = _saved_entry(repo, ev2, clock)
        second = engine.correlate(ev2, entry2, repo)

        assert second.id == first.id
        assert entry2.incident_id == first.id
        stored = repo.get_incident(first.id)
        assert stored.alert_count == 2
        assert stored.severity is Severity.CRITICAL
        assert stored.last_triggered_at == clock()
        assert stored.first_triggered_at < stored.last_triggered_at

    def test_severity_never_downgraded(self, repo, clock):
        engine = CorrelationEngine(clock)
        ev1 = make_event(device_ip="10.0.0.5", severity=Severity.CRITICAL)
        inc = engine.correlate(ev1, _saved_entry(repo, ev1, clock), repo)
        ev2 = make_event(device_ip="10.0.0.5", severity=Severity.INFO)
        engine.correlate(ev2, _saved_entry(repo, ev2, clock), repo)
        assert repo.get_incident(inc.id).severity is Severity.CRITICAL

    def test_outside_window_opens_new_incident(self, repo, clock):
        engine = CorrelationEngine(clock)
        ev = make_event(device_ip="10.0.0.5")
        first = engine.correlate(ev, _saved_entry(repo, ev, clock), repo)
        clock.advance(minutes=31)
        second = engine.correlate(ev, _saved_entry(repo, ev, clock), repo)
        assert second.id != first.id
        assert len(repo.get_incidents()) == 2

    def test_window_measured_from_last_alert(self, repo, clock):
        engine = CorrelationEngine(clock)
        ev = make_event(device_ip="10.0.0.5")
        first = engine.correlate(ev, _saved_entry(repo, ev, clock), repo)
        for _ in range(3):
            clock.advance(minutes=20)
            assert engine.correlate(ev, _saved_entry(repo, ev, clock), repo).id == first.id
        assert repo.get_incident(first.id).alert_count == 4

    def test_resolved_incident_not_reused(self, repo, clock):
        engine = CorrelationEngine(clock)
        ev = make_event(device_ip="10.0.0.5")
        first = engine.correlate(ev, _saved_entry(repo, ev, clock), repo)
        repo.resolve_incident(first.id)
        second = engine.correlate(ev, _saved_entry(repo, ev, clock), repo)
        assert second.id != first.id

    def test_no_key_no_incident(self, repo, clock):
        engine = CorrelationEngine(clock)
        ev = make_event(event_type="standalone")
        entry = _saved_entry(repo, ev, clock)
        assert engine.correlate(ev, entry, repo) is None
        assert entry.incident_id is None

    def test_store_failure_degrades_to_none(self, repo, clock, monkeypatch):
        engine = CorrelationEngine(clock)
        ev = make_event(device_ip="10.0.0.5")
        entry = _saved_entry(repo, ev, clock)

        def boom(key):
            raise RuntimeError("db down")

        monkeypatch.setattr(repo, "get_active_incident_by_key", boom)
        assert engine.correlate(ev, entry, repo) is None
        assert entry.incident_id is None

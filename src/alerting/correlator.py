"""Correlation engine — folds related alerts into incidents.

Correlation key (priority order):
  1. ``device:{device_ip}`` — same device, any event type.
  2. ``source:{prefix}``   — event-type prefix before the first dot
     (``threats.ips_event`` → ``source:threats``).
  3. no key               — the alert stays uncorrelated.

An active incident absorbs a new alert only while its last alert is younger
than ``CORRELATION_WINDOW``; otherwise a fresh incident is opened.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from src.contracts import AlertEvent, AlertHistoryEntry, AlertIncident, AlertStatus
from src.shared.timeutil import Clock, utc_now
from src.storage.repository import AlertRepository

log = logging.getLogger(__name__)

CORRELATION_WINDOW = timedelta(minutes=30)


class CorrelationEngine:
    def __init__(self, clock: Clock = utc_now, window: timedelta = CORRELATION_WINDOW) -> None:
        self._clock = clock
        self.window = window

    @staticmethod
    def correlation_key(event: AlertEvent) -> str | None:
        if event.device_ip:
            return f"device:{event.device_ip}"
        dot = event.event_type.find(".")
        if dot > 0:
            return f"source:{event.event_type[:dot]}"
        return None

    def correlate(
        self,
        event: AlertEvent,
        entry: AlertHistoryEntry,
        repo: AlertRepository,
    ) -> AlertIncident | None:
        """Attach *entry* to an incident; sets ``entry.incident_id`` on success.

        Never raises: a store failure degrades to "no incident".
        """
        key = self.correlation_key(event)
        if key is None:
            return None
        try:
            now = self._clock()
            incident = repo.get_active_incident_by_key(key)
            if incident is not None and now - incident.last_triggered_at < self.window:
                incident.alert_count += 1
                incident.last_triggered_at = max(incident.last_triggered_at, now)
                incident.severity = max(incident.severity, event.severity)
                repo.update_incident(incident)
                log.debug("Alert correlated into incident %d (%s, count=%d)",
                          incident.id, key, incident.alert_count)
            else:
                incident = AlertIncident(
                    title=event.title,
                    correlation_key=key,
                    severity=event.severity,
                    status=AlertStatus.ACTIVE,
                    alert_count=1,
                    first_triggered_at=now,
                    last_triggered_at=now,
                )
                incident.id = repo.save_incident(incident)
                log.debug("Opened incident %d (%s)", incident.id, key)
            entry.incident_id = incident.id
            return incident
        except Exception as exc:
            log.debug("Correlation failed for %s: %s", event.event_type, exc)
            return None

"""Digest summarizer — periodic per-channel summaries of recent alerts.

Each tick walks the enabled channels with ``digest_enabled`` (no schedule means
``daily:08:00``), and for every channel whose schedule is due:

  * fetches the alerts of the digest window (1 day, or 7 for weekly),
  * collapses noisy groups (``collapse_for_digest``),
  * computes severity counts over the *uncollapsed* set,
  * hands both to the channel's handler.

A channel is marked as sent (in memory and in the durable state store) when
the handler accepts the digest or when the window had no alerts at all.
A handler that returns False leaves it unmarked so the next tick retries.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from src.alerting.collapse import collapse_for_digest
from src.alerting.schedule import is_due, window_start
from src.contracts import DeliveryChannel, DigestSummary
from src.delivery.registry import ChannelRegistry
from src.shared.timeutil import Clock, utc_now
from src.storage.digest_state import DigestStateStore, InMemoryDigestStateStore
from src.storage.repository import AlertRepository, RepositoryFactory

log = logging.getLogger(__name__)


class DigestSummarizer:
    def __init__(
        self,
        repository_factory: RepositoryFactory,
        registry: ChannelRegistry,
        state_store: DigestStateStore | None = None,
        clock: Clock = utc_now,
        interval_seconds: float = 30.0,
    ) -> None:
        self._repository_factory = repository_factory
        self.registry = registry
        self.state_store = state_store or InMemoryDigestStateStore()
        self._clock = clock
        self.interval_seconds = interval_seconds

        self._last_sent: dict[int, datetime | None] = {}
        self._unhandled: set[int] = set()

    # ── loop ─────────────────────────────────────────────────────────────

    def run(self, stop_event: threading.Event) -> None:
        log.info("Digest loop started (tick every %.0fs)", self.interval_seconds)
        while not stop_event.wait(self.interval_seconds):
            try:
                self.tick()
            except Exception:
                log.exception("Error in digest check cycle")
        log.info("Digest loop stopped")

    # ── one tick ─────────────────────────────────────────────────────────

    def tick(self) -> list[int]:
        """Check every digest channel once; returns ids of channels marked as sent."""
        sent: list[int] = []
        with self._repository_factory() as repo:
            channels = [c for c in repo.get_enabled_channels() if c.digest_enabled]
            for channel in channels:
                try:
                    if self._process_channel(channel, repo):
                        sent.append(channel.id)
                except Exception:
                    log.exception("Failed to send digest to channel %d", channel.id)
        return sent

    def _process_channel(self, channel: DeliveryChannel, repo: AlertRepository) -> bool:
        now = self._clock()
        if not is_due(channel.digest_schedule, self.last_sent(channel.id), now):
            return False

        since = window_start(channel.digest_schedule, now)
        alerts = repo.get_alerts_since(since)
        if not alerts:
            log.debug("No alerts for digest on channel %d", channel.id)
            self._mark_sent(channel.id, now)
            return True

        handler = self.registry.get(channel.channel_type)
        if handler is None:
            if channel.id in self._unhandled:
                log.debug("Still no delivery handler for digest channel %d", channel.id)
            else:
                self._unhandled.add(channel.id)
                log.warning("No delivery handler for digest channel %d (type %s)",
                            channel.id, channel.channel_type.value)
            return False

        collapsed = collapse_for_digest(alerts)
        summary = DigestSummary.from_entries(alerts)
        if not handler.send_digest(collapsed, channel, summary):
            log.warning("Digest to channel %d (%s) was not accepted — will retry", channel.id, channel.name)
            return False

        self._mark_sent(channel.id, now)
        log.info("Sent digest with %d alerts (%d after collapsing) to channel %d (%s)",
                 summary.total_count, len(collapsed), channel.id, channel.name)
        return True

    # ── last-sent state ──────────────────────────────────────────────────

    def last_sent(self, channel_id: int) -> datetime | None:
        """In-memory value; loaded from the durable store the first time a channel is seen."""
        if channel_id not in self._last_sent:
            try:
                self._last_sent[channel_id] = self.state_store.get_last_sent(channel_id)
            except Exception:
                log.exception("Could not load digest state for channel %d", channel_id)
                self._last_sent[channel_id] = None
        return self._last_sent[channel_id]

    def _mark_sent(self, channel_id: int, sent_at: datetime) -> None:
        self._last_sent[channel_id] = sent_at
        try:
            self.state_store.set_last_sent(channel_id, sent_at)
        except Exception:
            log.exception("Could not persist digest state for channel %d", channel_id)

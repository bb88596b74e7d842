"""Processing pipeline — event → rules → history → incident → delivery.

Per event
─────────
  1. refresh the enabled-rule cache if older than ``rule_cache_seconds``
  2. sweep stale cooldowns every ``cooldown_sweep_interval``
  3. evaluate rules; for each match (in rule order):
       save history → correlate → persist incident link
       → (digest-only: stop) → deliver → persist outcome → record cooldown

Every rule match is its own fault boundary, and ``run`` wraps each event, so
a single bad event or rule never stops the loop.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta

from src.alerting.bus import EventBus
from src.alerting.cooldown import CooldownTracker
from src.alerting.correlator import CorrelationEngine
from src.alerting.evaluator import RuleEvaluator
from src.contracts import AlertEvent, AlertHistoryEntry, AlertRule
from src.delivery.registry import ChannelRegistry
from src.shared.timeutil import Clock, utc_now
from src.storage.repository import AlertRepository, RepositoryFactory

log = logging.getLogger(__name__)

COOLDOWN_MAX_AGE = timedelta(hours=2)


class AlertProcessor:
    def __init__(
        self,
        repository_factory: RepositoryFactory,
        registry: ChannelRegistry,
        evaluator: RuleEvaluator | None = None,
        correlator: CorrelationEngine | None = None,
        clock: Clock = utc_now,
        rule_cache_seconds: float = 60.0,
        cooldown_sweep_interval: timedelta = timedelta(minutes=30),
    ) -> None:
        self._repository_factory = repository_factory
        self.registry = registry
        self.evaluator = evaluator or RuleEvaluator(CooldownTracker(clock))
        self.correlator = correlator or CorrelationEngine(clock)
        self._clock = clock
        self._rule_cache_ttl = timedelta(seconds=rule_cache_seconds)
        self._sweep_interval = cooldown_sweep_interval

        self._cached_rules: list[AlertRule] = []
        self._rules_cached_at: datetime | None = None
        self._last_sweep = clock()
        self.processed = 0

    # ═══════════════════════════════════════════════════════════════════
    #  Loop
    # ═══════════════════════════════════════════════════════════════════

    def run(self, bus: EventBus, stop_event: threading.Event, poll_interval: float = 0.5) -> None:
        """Consume *bus* until *stop_event* is set or the bus is closed and drained."""
        log.info("Alert processing loop started")
        for event in bus.consume(stop_event, poll_interval):
            try:
                self.process_event(event)
            except Exception:
                log.exception("Failed to process alert event %s", event.event_type)
        log.info("Alert processing loop stopped (%d events processed)", self.processed)

    # ═══════════════════════════════════════════════════════════════════
    #  Per event
    # ═══════════════════════════════════════════════════════════════════

    def process_event(self, event: AlertEvent) -> list[AlertHistoryEntry]:
        """Run one event through the pipeline; returns the saved history entries."""
        self.processed += 1
        entries: list[AlertHistoryEntry] = []
        with self._repository_factory() as repo:
            self._refresh_rules(repo)
            self._maybe_sweep_cooldowns()

            matched = self.evaluator.evaluate(event, self._cached_rules)
            if not matched:
                log.debug("No matching rules for event %s", event.event_type)
                return entries

            for rule in matched:
                try:
                    entries.append(self._process_rule_match(event, rule, repo))
                    self.evaluator.record_fired(rule, event)
                except Exception:
                    log.exception("Failed to process rule %d for event %s", rule.id, event.event_type)
        return entries

    def _refresh_rules(self, repo: AlertRepository) -> None:
        now = self._clock()
        if self._rules_cached_at is not None and now - self._rules_cached_at < self._rule_cache_ttl:
            return
        try:
            self._cached_rules = repo.get_enabled_rules()
            self._rules_cached_at = now
            log.debug("Rule cache refreshed: %d enabled rules", len(self._cached_rules))
        except Exception:
            log.exception("Rule cache refresh failed — serving %d cached rules", len(self._cached_rules))

    def invalidate_rules(self) -> None:
        """Force a reload on the next event (after an admin edits rules)."""
        self._rules_cached_at = None

    def _maybe_sweep_cooldowns(self) -> None:
        now = self._clock()
        if now - self._last_sweep <= self._sweep_interval:
            return
        evicted = self.evaluator.cooldowns.cleanup(COOLDOWN_MAX_AGE)
        self._last_sweep = now
        log.debug("Cooldown sweep: %d evicted, %d tracked", evicted, len(self.evaluator.cooldowns))

    # ═══════════════════════════════════════════════════════════════════
    #  Per rule match
    # ═══════════════════════════════════════════════════════════════════

    def _process_rule_match(
        self,
        event: AlertEvent,
        rule: AlertRule,
        repo: AlertRepository,
    ) -> AlertHistoryEntry:
        entry = AlertHistoryEntry.from_event(event, rule.id, self._clock())
        entry.id = repo.save_alert(entry)

        self.correlator.correlate(event, entry, repo)
        # incident link is persisted for digest-only rules too
        if entry.incident_id is not None:
            repo.update_alert(entry)

        if rule.digest_only:
            log.debug("Rule %d is digest-only, skipping immediate delivery", rule.id)
            return entry

        self._deliver(event, entry, repo)
        return entry

    def _deliver(self, event: AlertEvent, entry: AlertHistoryEntry, repo: AlertRepository) -> None:
        delivered: list[int] = []
        errors: list[str] = []

        for channel in repo.get_enabled_channels():
            if event.severity < channel.min_severity:
                continue
            handler = self.registry.get(channel.channel_type)
            if handler is None:
                log.warning("No delivery handler for channel type %s", channel.channel_type.value)
                continue
            try:
                if handler.send(event, entry, channel):
                    delivered.append(channel.id)
                else:
                    errors.append(f"Channel {channel.id} ({channel.name}): delivery returned false")
            except Exception as exc:
                log.error("Delivery to channel %d (%s) failed: %s", channel.id, channel.name, exc)
                errors.append(f"Channel {channel.id} ({channel.name}): {exc}")

        entry.delivered_to_channels = ",".join(str(i) for i in delivered) or None
        entry.delivery_succeeded = bool(delivered) and not errors
        entry.delivery_error = "; ".join(errors) or None
        repo.update_alert(entry)

        if errors:
            log.warning("Alert %d delivery: %d ok, %d failed", entry.id, len(delivered), len(errors))
        else:
            log.debug("Alert %d delivered to [%s]", entry.id, entry.delivered_to_channels or "")

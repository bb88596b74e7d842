"""Rule evaluator — decides which rules an incoming event triggers.

Checks run per rule in this order and stop at the first failure:

  enabled → min severity → event-type pattern → source → target devices
  → threshold → cooldown

Rule order is preserved in the result.
"""

from __future__ import annotations

import logging

from src.alerting.cooldown import CooldownTracker
from src.contracts import AlertEvent, AlertRule

log = logging.getLogger(__name__)

# context keys consulted by threshold rules, in lookup order
THRESHOLD_CONTEXT_KEYS = ("drop_percent", "drop")


def matches_event_type(pattern: str | None, event_type: str) -> bool:
    """``""``/``"*"`` match anything; ``"audit.*"`` needs ``"audit."`` as a prefix."""
    if not pattern or pattern == "*":
        return True
    if pattern.endswith(".*"):
        prefix = pattern[:-1].lower()  # keep the dot
        return event_type.lower().startswith(prefix)
    return pattern.lower() == event_type.lower()


def matches_source(rule_source: str | None, event_source: str) -> bool:
    if not rule_source:
        return True
    return rule_source.lower() == (event_source or "").lower()


def matches_target_devices(target_devices: str | None, event: AlertEvent) -> bool:
    if not target_devices or not target_devices.strip():
        return True
    targets = {t.strip().lower() for t in target_devices.split(",") if t.strip()}
    if not targets:
        return True
    candidates = (event.device_id, event.device_ip)
    return any(c and c.lower() in targets for c in candidates)


def passes_threshold(threshold_percent: float | None, context: dict[str, str]) -> bool:
    """Missing or unparseable values let the rule through."""
    if threshold_percent is None:
        return True
    raw = None
    for key in THRESHOLD_CONTEXT_KEYS:
        if key in context:
            raw = context[key]
            break
    if raw is None:
        return True
    try:
        value = float(raw)
    except (TypeError, ValueError):
        log.debug("Unparseable threshold value %r — letting rule through", raw)
        return True
    return value >= threshold_percent


class RuleEvaluator:
    def __init__(self, cooldowns: CooldownTracker) -> None:
        self.cooldowns = cooldowns

    @staticmethod
    def cooldown_key(rule: AlertRule, event: AlertEvent) -> str:
        device = event.device_id or event.device_ip or "global"
        return f"{rule.id}:{device}"

    def evaluate(self, event: AlertEvent, rules: list[AlertRule]) -> list[AlertRule]:
        matched: list[AlertRule] = []
        for rule in rules:
            if self._matches(rule, event):
                matched.append(rule)
        return matched

    def _matches(self, rule: AlertRule, event: AlertEvent) -> bool:
        if not rule.enabled:
            return False
        if event.severity < rule.min_severity:
            return False
        if not matches_event_type(rule.event_type_pattern, event.event_type):
            return False
        if not matches_source(rule.source, event.source):
            return False
        if not matches_target_devices(rule.target_devices, event):
            return False
        if not passes_threshold(rule.threshold_percent, event.context):
            return False
        if self.cooldowns.is_in_cooldown(self.cooldown_key(rule, event), rule.cooldown_seconds):
            log.debug("Rule %d in cooldown for %s", rule.id, event.event_type)
            return False
        return True

    def record_fired(self, rule: AlertRule, event: AlertEvent) -> None:
        self.cooldowns.record_fired(self.cooldown_key(rule, event))

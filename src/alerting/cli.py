"""CLI entry-point for the alerting pipeline.

Usage examples
--------------
# Tail a JSONL event feed with the config in config/:
python -m src.alerting --input data/events.jsonl

# Custom config dir, faster polling, verbose logs:
python -m src.alerting --input data/events.jsonl --config-dir myconf \\
    --poll-interval-ms 250 --log-level DEBUG
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import time
from datetime import timedelta
from pathlib import Path

from src.alerting.bus import EventBus
from src.alerting.cooldown import CooldownTracker
from src.alerting.correlator import CorrelationEngine
from src.alerting.defaults import default_rules
from src.alerting.digest import DigestSummarizer
from src.alerting.evaluator import RuleEvaluator
from src.alerting.pipeline import AlertProcessor
from src.alerting.service import AlertingService
from src.contracts import AlertEvent
from src.delivery import ChannelRegistry, LogDeliveryChannel, WebhookDeliveryChannel
from src.shared.config_loader import AlertingSettings, load_channels, load_rules, load_settings
from src.shared.logger import setup_logging
from src.shared.secrets import SecretBox
from src.storage import InMemoryAlertRepository, JsonFileDigestStateStore

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="alerting",
        description="Alerting pipeline — rules, cooldown, incidents, delivery, digests",
    )
    p.add_argument(
        "--input",
        default="data/events.jsonl",
        help="JSONL event feed to tail (one AlertEvent per line). Default: data/events.jsonl",
    )
    p.add_argument(
        "--config-dir",
        default="config",
        help="Directory with alerting.yaml, rules.yaml and channels.yaml. Default: config/",
    )
    p.add_argument(
        "--poll-interval-ms",
        type=int,
        default=1000,
        help="Poll interval for new lines in the feed, ms (default: 1000).",
    )
    p.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Default: log_level from alerting.yaml (INFO)",
    )
    return p


# ═══════════════════════════════════════════════════════════════════════════
#  Wiring
# ═══════════════════════════════════════════════════════════════════════════

def seed_repository(repo: InMemoryAlertRepository, config_dir: str | Path) -> None:
    """Load rules and channels from *config_dir*; built-in rules if rules.yaml is absent."""
    cfg = Path(config_dir)
    rules_path = cfg / "rules.yaml"
    rules = load_rules(rules_path) if rules_path.exists() else default_rules()
    if not rules_path.exists():
        log.info("No %s — using %d built-in rules", rules_path, len(rules))
    for rule in rules:
        repo.save_rule(rule)

    channels_path = cfg / "channels.yaml"
    if channels_path.exists():
        for channel in load_channels(channels_path):
            repo.save_channel(channel)
    else:
        log.warning("No %s — alerts will be recorded but not delivered", channels_path)


def build_service(
    settings: AlertingSettings,
    repo: InMemoryAlertRepository,
    poll_interval: float = 0.5,
) -> AlertingService:
    registry = ChannelRegistry([
        LogDeliveryChannel(),
        WebhookDeliveryChannel(secrets=SecretBox.from_env()),
    ])
    processor = AlertProcessor(
        repository_factory=repo.session,
        registry=registry,
        evaluator=RuleEvaluator(CooldownTracker()),
        correlator=CorrelationEngine(),
        rule_cache_seconds=settings.rule_cache_seconds,
        cooldown_sweep_interval=timedelta(minutes=settings.cooldown_sweep_minutes),
    )
    summarizer = DigestSummarizer(
        repository_factory=repo.session,
        registry=registry,
        state_store=JsonFileDigestStateStore(settings.digest_state_path),
        interval_seconds=settings.digest_interval_seconds,
    )
    return AlertingService(EventBus(settings.bus_capacity), processor, summarizer, poll_interval)


# ═══════════════════════════════════════════════════════════════════════════
#  Feed tailing
# ═══════════════════════════════════════════════════════════════════════════

def read_new_events(path: str, offset: int) -> tuple[list[AlertEvent], int]:
    """Parse lines appended after *offset*; returns the events and the new offset."""
    if not os.path.isfile(path):
        return [], offset
    size = os.path.getsize(path)
    if size < offset:
        log.info("Feed %s was truncated — reading from the start", path)
        offset = 0
    if size == offset:
        return [], offset

    with open(path, "rb") as fh:
        fh.seek(offset)
        chunk = fh.read()
    # a trailing line without "\n" may still be being written
    end = chunk.rfind(b"\n")
    if end < 0:
        return [], offset
    complete = chunk[: end + 1]

    events: list[AlertEvent] = []
    for line in complete.decode("utf-8", errors="replace").splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            events.append(AlertEvent.from_dict(json.loads(line)))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            log.warning("Skipping unparseable event line: %s", exc)
    return events, offset + len(complete)


def watch_feed(service: AlertingService, input_path: str, poll_interval_sec: float) -> int:
    """Publish every line of *input_path* (existing and appended) until Ctrl+C."""
    offset = 0
    published = 0
    print(f"Alerting watch mode -> {input_path}")
    print(f"  poll interval: {poll_interval_sec:.1f}s")
    print("  Press Ctrl+C to stop.")
    try:
        while True:
            events, offset = read_new_events(input_path, offset)
            for event in events:
                service.bus.publish(event)
            if events:
                published += len(events)
                log.info("Published %d new events (%d total)", len(events), published)
            time.sleep(poll_interval_sec)
    except KeyboardInterrupt:
        print(f"\nWatch stopped. Total events published: {published}")
    return published


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = load_settings(Path(args.config_dir) / "alerting.yaml", required=False)
    setup_logging(args.log_level or settings.log_level)

    repo = InMemoryAlertRepository()
    seed_repository(repo, args.config_dir)

    service = build_service(settings, repo)
    service.start()
    try:
        watch_feed(service, args.input, args.poll_interval_ms / 1000.0)
    finally:
        service.stop()


if __name__ == "__main__":
    main()

"""Завантаження YAML конфігурацій."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from src.contracts import AlertRule, DeliveryChannel

log = logging.getLogger(__name__)


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Зчитує YAML файл та повертає його вміст як dict.

    Args:
        path: Шлях до файлу.

    Returns:
        Вміст файлу як словник.

    Raises:
        FileNotFoundError: Якщо файл не знайдено.
        ValueError: Якщо верхній рівень файлу не є словником.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    with p.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is not None and not isinstance(data, dict):
        raise ValueError(f"Config {p.name} must be a mapping, got {type(data).__name__}")
    log.debug("Loaded config %s (%d top-level keys)", p.name, len(data or {}))
    return data or {}


@dataclass(slots=True)
class AlertingSettings:
    """Runtime knobs for the two background loops (config/alerting.yaml)."""

    rule_cache_seconds: float = 60.0
    cooldown_sweep_minutes: float = 30.0
    digest_interval_seconds: float = 30.0
    bus_capacity: int = 1000
    digest_state_path: str = "data/digest_state.json"
    log_level: str = "INFO"


def load_settings(path: str | Path, required: bool = True) -> AlertingSettings:
    """Build ``AlertingSettings`` from the ``alerting:`` section of a YAML file.

    Unknown keys are ignored with a warning; missing keys keep their defaults.
    With ``required=False`` a missing file yields the defaults.
    """
    try:
        cfg = load_yaml(path)
    except FileNotFoundError:
        if required:
            raise
        log.info("No settings file at %s — using defaults", path)
        return AlertingSettings()

    section = cfg.get("alerting", cfg)
    known = {f.name: f for f in fields(AlertingSettings)}
    kwargs: dict[str, Any] = {}
    for key, value in section.items():
        if key not in known:
            log.warning("Unknown alerting setting '%s' ignored", key)
            continue
        default = getattr(AlertingSettings(), key)
        try:
            kwargs[key] = type(default)(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid value for '{key}': {value!r}") from exc
    return AlertingSettings(**kwargs)


def load_rules(path: str | Path) -> list[AlertRule]:
    """Read the ``rules:`` list of rules.yaml.

    Raises:
        FileNotFoundError: Якщо файл не знайдено.
        ValueError: На невідомій severity чи відсутній назві правила.
    """
    cfg = load_yaml(path)
    rules: list[AlertRule] = []
    for i, row in enumerate(cfg.get("rules") or [], start=1):
        if not isinstance(row, dict) or not row.get("name"):
            raise ValueError(f"rules.yaml entry #{i} needs a 'name'")
        rules.append(AlertRule.from_dict(row))
    log.info("Loaded %d rules from %s", len(rules), path)
    return rules


def load_channels(path: str | Path) -> list[DeliveryChannel]:
    """Read the ``channels:`` list of channels.yaml."""
    cfg = load_yaml(path)
    channels: list[DeliveryChannel] = []
    for i, row in enumerate(cfg.get("channels") or [], start=1):
        if not isinstance(row, dict) or not row.get("name"):
            raise ValueError(f"channels.yaml entry #{i} needs a 'name'")
        channels.append(DeliveryChannel.from_dict(row))
    log.info("Loaded %d delivery channels from %s", len(channels), path)
    return channels

"""Built-in rule set used when no rules.yaml is configured."""

from __future__ import annotations

from src.contracts import AlertRule, Severity


def default_rules() -> list[AlertRule]:
    """Fresh rule objects (ids unassigned) — safe to hand to ``save_rule``."""
    return [
        # ── security audit ──
        AlertRule(
            name="Security Audit: Score Drop",
            event_type_pattern="audit.score_dropped",
            source="audit",
            min_severity=Severity.WARNING,
            cooldown_seconds=3600,
            threshold_percent=15.0,
        ),
        AlertRule(
            name="Security Audit: Completed",
            enabled=False,
            event_type_pattern="audit.completed",
            source="audit",
            min_severity=Severity.INFO,
            cooldown_seconds=3600,
        ),
        AlertRule(
            name="Security Audit: Critical Finding",
            event_type_pattern="audit.critical_findings",
            source="audit",
            min_severity=Severity.CRITICAL,
            cooldown_seconds=0,
        ),
        # ── devices ──
        AlertRule(
            name="Device Offline",
            enabled=False,
            event_type_pattern="device.offline",
            source="device",
            min_severity=Severity.ERROR,
            cooldown_seconds=300,
        ),
        AlertRule(
            name="Wi-Fi Optimizer: Channel Congestion",
            event_type_pattern="wifi.congestion",
            source="wifi",
            min_severity=Severity.WARNING,
            cooldown_seconds=3600,
            digest_only=True,
        ),
        # ── threat intelligence ──
        AlertRule(
            name="Threat Intelligence: Critical Event",
            event_type_pattern="threats.ips_event",
            source="threats",
            min_severity=Severity.CRITICAL,
            cooldown_seconds=60,
        ),
        AlertRule(
            name="Threat Intelligence: Attack Chain",
            event_type_pattern="threats.attack_chain",
            source="threats",
            min_severity=Severity.WARNING,
            cooldown_seconds=3600,
        ),
        AlertRule(
            name="Threat Intelligence: Early-Stage Attack Chain",
            enabled=False,
            event_type_pattern="threats.attack_chain_attempt",
            source="threats",
            min_severity=Severity.INFO,
            cooldown_seconds=3600,
        ),
        AlertRule(
            name="Threat Intelligence: Attack Pattern",
            enabled=False,
            event_type_pattern="threats.attack_pattern",
            source="threats",
            min_severity=Severity.WARNING,
            cooldown_seconds=3600,
        ),
        # ── speed tests ──
        AlertRule(
            name="WAN Speed Test: Degradation",
            enabled=False,
            event_type_pattern="wan.speed_degradation",
            source="wan",
            min_severity=Severity.WARNING,
            cooldown_seconds=1800,
            threshold_percent=40.0,
        ),
        AlertRule(
            name="LAN Speed Test: Regression",
            enabled=False,
            event_type_pattern="speedtest.regression",
            source="speedtest",
            min_severity=Severity.WARNING,
            cooldown_seconds=3600,
            threshold_percent=25.0,
        ),
        # ── scheduler ──
        AlertRule(
            name="Scheduled Task Failed",
            event_type_pattern="schedule.task_failed",
            source="schedule",
            min_severity=Severity.ERROR,
            cooldown_seconds=3600,
        ),
    ]

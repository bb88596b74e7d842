"""Alerting — turns domain events into deduplicated, correlated notifications.

Modules
───────
  bus         — bounded in-process EventBus (drop-oldest)
  cooldown    — per (rule, device) repeat suppression
  evaluator   — AlertRule matching: severity, pattern, source, devices, threshold
  correlator  — AlertHistoryEntry → AlertIncident (device / source key)
  pipeline    — AlertProcessor: evaluate → persist → correlate → deliver
  schedule    — digest schedule strings (daily / weekly)
  collapse    — digest noise collapsing
  digest      — DigestSummarizer: periodic per-channel summaries
  service     — AlertingService: both loops on daemon threads
  defaults    — built-in rule set
  cli         — argparse entry-point (tails a JSONL feed)
"""

"""Two-tier noise collapsing for digests.

Within each source:
  * INFO alerts are always folded per ``event_type``;
  * other severities are folded per ``(title, severity)`` only when the
    source produced more than ``COLLAPSE_THRESHOLD`` of them.

A folded group is represented by a copy of its newest entry whose title gets
a ``" (Nx)"`` suffix.  Input entries are never modified.
"""

from __future__ import annotations

import copy
from collections import defaultdict
from typing import Hashable, Iterable

from src.contracts import AlertHistoryEntry, Severity

COLLAPSE_THRESHOLD = 10


def _fold(entries: list[AlertHistoryEntry], key_of) -> list[AlertHistoryEntry]:
    """Group by *key_of* (first-appearance order) and reduce each group to one entry."""
    groups: dict[Hashable, list[AlertHistoryEntry]] = {}
    for e in entries:
        groups.setdefault(key_of(e), []).append(e)

    out: list[AlertHistoryEntry] = []
    for group in groups.values():
        if len(group) == 1:
            out.append(group[0])
            continue
        newest = max(group, key=lambda e: e.triggered_at)
        rep = copy.deepcopy(newest)
        rep.title = f"{newest.title} ({len(group)}x)"
        out.append(rep)
    return out


def collapse_for_digest(entries: Iterable[AlertHistoryEntry]) -> list[AlertHistoryEntry]:
    by_source: dict[str, list[AlertHistoryEntry]] = defaultdict(list)
    for e in entries:
        by_source[e.source].append(e)

    result: list[AlertHistoryEntry] = []
    for group in by_source.values():
        info = [e for e in group if e.severity == Severity.INFO]
        other = [e for e in group if e.severity != Severity.INFO]

        if len(other) > COLLAPSE_THRESHOLD:
            result.extend(_fold(other, lambda e: (e.title, e.severity)))
        else:
            result.extend(other)
        result.extend(_fold(info, lambda e: e.event_type))
    return result

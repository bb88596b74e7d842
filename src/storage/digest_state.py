"""Durable per-channel "digest last sent" timestamps.

Restarting the process must not immediately re-send a digest that already
went out, so the summarizer mirrors its in-memory map into one of these.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from src.shared.timeutil import format_ts, parse_ts

log = logging.getLogger(__name__)


@runtime_checkable
class DigestStateStore(Protocol):
    def get_last_sent(self, channel_id: int) -> datetime | None: ...

    def set_last_sent(self, channel_id: int, sent_at: datetime) -> None: ...


class InMemoryDigestStateStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[int, datetime] = {}

    def get_last_sent(self, channel_id: int) -> datetime | None:
        with self._lock:
            return self._data.get(channel_id)

    def set_last_sent(self, channel_id: int, sent_at: datetime) -> None:
        with self._lock:
            self._data[channel_id] = sent_at


class JsonFileDigestStateStore:
    """``{"<channel_id>": "<ISO-8601 UTC>"}`` in a single JSON file.

    Writes go to a temp file in the same directory and are moved into place
    with ``os.replace`` so a crash never leaves a half-written file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except json.JSONDecodeError as exc:
            log.warning("Digest state file %s is corrupt (%s) — starting empty", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get_last_sent(self, channel_id: int) -> datetime | None:
        with self._lock:
            raw = self._read().get(str(channel_id))
        if not raw:
            return None
        try:
            return parse_ts(raw)
        except ValueError:
            log.warning("Bad digest timestamp for channel %s: %r", channel_id, raw)
            return None

    def set_last_sent(self, channel_id: int, sent_at: datetime) -> None:
        with self._lock:
            data = self._read()
            data[str(channel_id)] = format_ts(sent_at)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".digest_state.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2, sort_keys=True)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise

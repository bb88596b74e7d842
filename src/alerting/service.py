"""AlertingService — hosts the processing and digest loops on two daemon threads."""

from __future__ import annotations

import logging
import threading

from src.alerting.bus import EventBus
from src.alerting.digest import DigestSummarizer
from src.alerting.pipeline import AlertProcessor

log = logging.getLogger(__name__)


class AlertingService:
    def __init__(
        self,
        bus: EventBus,
        processor: AlertProcessor,
        summarizer: DigestSummarizer,
        poll_interval: float = 0.5,
    ) -> None:
        self.bus = bus
        self.processor = processor
        self.summarizer = summarizer
        self.poll_interval = poll_interval
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        if self.running:
            raise RuntimeError("AlertingService already started")
        if self.bus.closed:
            raise RuntimeError("AlertingService cannot be restarted after stop")
        self._stop.clear()
        self._threads = [
            threading.Thread(
                target=self.processor.run,
                args=(self.bus, self._stop, self.poll_interval),
                name="alert-processor",
                daemon=True,
            ),
            threading.Thread(
                target=self.summarizer.run,
                args=(self._stop,),
                name="alert-digest",
                daemon=True,
            ),
        ]
        for t in self._threads:
            t.start()
        log.info("Alerting service started")

    def stop(self, timeout: float = 5.0) -> bool:
        """Signal both loops, close the bus, join and close the delivery handlers.

        Returns False if a thread is still alive.  A stopped service cannot be
        started again.
        """
        self._stop.set()
        self.bus.close()
        for t in self._threads:
            t.join(timeout)
        self.processor.registry.close()
        alive = [t.name for t in self._threads if t.is_alive()]
        if alive:
            log.warning("Threads still running after %.1fs: %s", timeout, ", ".join(alive))
            return False
        log.info("Alerting service stopped")
        return True

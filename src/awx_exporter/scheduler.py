"""
Background scrape loop.

One thread runs scrape -> wait -> scrape for the life of the process, so
scrapes never overlap. The wait is on a threading.Event: setting it wakes
the loop immediately and it exits without starting another scrape. A
scrape already in flight is not interrupted; the per-request timeout in
the client bounds how long that takes.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from awx_exporter.errors import ExporterError
from awx_exporter.registry import MetricRegistry
from awx_exporter.scrape import Scraper

log = logging.getLogger(__name__)


class ScrapeScheduler:

    def __init__(self, scraper: Scraper, registry: MetricRegistry, interval: float):
        self._scraper = scraper
        self._registry = registry
        self._interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.scrapes = 0
        self.failures = 0

    @property
    def interval(self) -> float:
        return self._interval

    def run_once(self) -> bool:
        """Run one scrape. Errors are logged and counted, never raised."""
        self.scrapes += 1
        start = time.monotonic()
        try:
            result = self._scraper.scrape()
        except ExporterError as e:
            self.failures += 1
            self._registry.scrape_errors.inc()
            log.error("Collection failed, keeping previous metrics: %s", e)
            return False
        except Exception:
            self.failures += 1
            self._registry.scrape_errors.inc()
            log.exception("Collection failed with an unexpected error, keeping previous metrics")
            return False

        duration = time.monotonic() - start
        self._registry.scrape_duration.observe(duration)
        log.info(
            "Metrics collection completed in %.2fs: %d pages, %d hosts, %d series",
            duration, result.pages, result.hosts, result.observations,
        )
        return True

    def run(self, stop_event: Optional[threading.Event] = None):
        """Scrape now, then every `interval` seconds until the event is set."""
        stop = stop_event if stop_event is not None else self._stop
        log.info("Starting scrape loop: interval=%.1fs", self._interval)

        while not stop.is_set():
            self.run_once()
            if stop.wait(self._interval):
                break

        log.info("Scrape loop stopped after %d scrapes (%d failed)", self.scrapes, self.failures)

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("scheduler already running")
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="awx-scrape", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Signal the loop to exit and wait for it. Returns False if it is still running."""
        self._stop.set()
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

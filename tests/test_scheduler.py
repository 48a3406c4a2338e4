"""Tests for the scrape loop: error accounting, cancellation, no overlap."""

import threading
import time

from awx_exporter.errors import DecodeError, TransportError
from awx_exporter.registry import MetricRegistry
from awx_exporter.scheduler import ScrapeScheduler
from awx_exporter.scrape import ScrapeResult


class _ScriptedScraper:
    """Stands in for Scraper; each call pops the next outcome (result or exception)."""

    def __init__(self, outcomes=None, on_scrape=None):
        self._outcomes = list(outcomes or [])
        self._on_scrape = on_scrape
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.called = threading.Event()

    def scrape(self):
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            self.called.set()
            if self._on_scrape:
                self._on_scrape()
            outcome = self._outcomes.pop(0) if self._outcomes else ScrapeResult(pages=1)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            self.active -= 1


def _errors(registry):
    return registry.registry.get_sample_value("awx_exporter_scrape_errors_total")


def _durations(registry):
    return registry.registry.get_sample_value("awx_exporter_scrape_duration_seconds_count")


def test_successful_scrape_observes_duration():
    registry = MetricRegistry()
    scheduler = ScrapeScheduler(_ScriptedScraper(), registry, interval=60)

    assert scheduler.run_once() is True
    assert _durations(registry) == 1.0
    assert _errors(registry) == 0.0


def test_failures_are_counted_once_and_swallowed():
    registry = MetricRegistry()
    scraper = _ScriptedScraper([
        TransportError("https://awx/api/v2/hosts/", "connection refused"),
        DecodeError("error parsing JSON"),
        RuntimeError("something unexpected"),
    ])
    scheduler = ScrapeScheduler(scraper, registry, interval=60)

    assert scheduler.run_once() is False
    assert _errors(registry) == 1.0
    assert scheduler.run_once() is False
    assert scheduler.run_once() is False

    assert _errors(registry) == 3.0
    assert _durations(registry) == 0.0
    assert scheduler.failures == 3


def test_first_scrape_runs_immediately_and_stop_ends_loop():
    stop = threading.Event()
    scraper = _ScriptedScraper(on_scrape=stop.set)
    scheduler = ScrapeScheduler(scraper, MetricRegistry(), interval=3600)

    started = time.monotonic()
    scheduler.run(stop)

    assert scraper.calls == 1
    assert time.monotonic() - started < 5


def test_stop_before_run_means_no_scrape():
    stop = threading.Event()
    stop.set()
    scraper = _ScriptedScraper()
    ScrapeScheduler(scraper, MetricRegistry(), interval=3600).run(stop)
    assert scraper.calls == 0


def test_stop_interrupts_the_wait():
    scraper = _ScriptedScraper()
    scheduler = ScrapeScheduler(scraper, MetricRegistry(), interval=3600)

    scheduler.start()
    assert scraper.called.wait(5)
    started = time.monotonic()
    assert scheduler.stop(timeout=5) is True

    assert time.monotonic() - started < 5
    assert scraper.calls == 1


def test_loop_keeps_going_after_failures_without_overlap():
    scraper = _ScriptedScraper([TransportError("u", "down"), TransportError("u", "down")])
    registry = MetricRegistry()
    scheduler = ScrapeScheduler(scraper, registry, interval=0.01)

    scheduler.start()
    deadline = time.monotonic() + 5
    while scraper.calls < 4 and time.monotonic() < deadline:
        time.sleep(0.01)
    scheduler.stop(timeout=5)

    assert scraper.calls >= 4
    assert scraper.max_active == 1
    assert _errors(registry) == 2.0

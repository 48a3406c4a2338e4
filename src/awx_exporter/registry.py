"""
Metric registry for the exporter.

Inventory gauges live in a copy-on-write snapshot: writers build a new
dict and swap the reference under a lock, and the /metrics collector
reads whatever reference is current. A scrape commits all its families
in one swap through publish(), so a reader sees either the previous
scrape or the new one, never a mix.

The exporter's own health metrics (errors, hosts processed, scrape
duration) are ordinary prometheus_client Counter/Histogram objects and
are never reset.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, Iterator, Mapping, NamedTuple, Optional, Sequence, Tuple

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from awx_exporter import transform
from awx_exporter.transform import Observation

LabelValues = Tuple[str, ...]
Series = Dict[LabelValues, float]


class FamilySpec(NamedTuple):
    documentation: str
    labels: Tuple[str, ...]


GAUGE_FAMILIES: Mapping[str, FamilySpec] = {
    transform.HOST_INFO: FamilySpec(
        "Information about AWX hosts including inventory and enabled status",
        ("id", "name", "inventory_id", "inventory_name", "enabled", "instance_id"),
    ),
    transform.HOST_STATUS: FamilySpec(
        "Status metrics for AWX hosts including failures and inventory sources",
        ("id", "name", "metric", "group"),
    ),
    transform.HOST_TIMESTAMPS: FamilySpec(
        "Unix timestamps for AWX host events (created, modified, facts modified)",
        ("id", "name", "event"),
    ),
    transform.HOST_GROUP_MEMBERSHIP: FamilySpec(
        "Host to group membership relationships in AWX (1 = member)",
        ("host_id", "host_name", "group_id", "group_name"),
    ),
    transform.GROUP_INFO: FamilySpec(
        "Information about AWX groups and their inventory associations",
        ("group_id", "group_name", "inventory_id"),
    ),
    transform.JOB_TEMPLATE_LAST_RUN: FamilySpec(
        "Unix timestamp of the last job run for an AWX job template",
        ("id", "name"),
    ),
    transform.JOB_TEMPLATE_FAILED_HOSTS: FamilySpec(
        "Hosts with active failures in the job template's inventory",
        ("id", "name"),
    ),
    transform.JOB_TEMPLATE_TOTAL_HOSTS: FamilySpec(
        "Total hosts in the job template's inventory",
        ("id", "name"),
    ),
}


class _GaugeSnapshotCollector(Collector):
    """Exposes the registry's current gauge snapshot to prometheus_client."""

    def __init__(self, registry: "MetricRegistry"):
        self._registry = registry

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for name, spec in GAUGE_FAMILIES.items():
            yield GaugeMetricFamily(name, spec.documentation, labels=spec.labels)

    def collect(self) -> Iterator[GaugeMetricFamily]:
        # Grab the reference once; it is never mutated after being swapped in
        current = self._registry._series
        for name, spec in GAUGE_FAMILIES.items():
            family = GaugeMetricFamily(name, spec.documentation, labels=spec.labels)
            for labels, value in current[name].items():
                family.add_metric(list(labels), value)
            yield family


class MetricRegistry:
    """All metrics the exporter serves.

    Created once at startup and shared by the scheduler (writer) and the
    HTTP server (reader) for the life of the process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self._lock = threading.Lock()
        self._series: Dict[str, Series] = {name: {} for name in GAUGE_FAMILIES}

        self.scrape_duration = Histogram(
            "awx_exporter_scrape_duration_seconds",
            "Duration of AWX API scrape operations",
            registry=self.registry,
        )
        self.scrape_errors = Counter(
            "awx_exporter_scrape_errors_total",
            "Total number of errors during AWX API scraping",
            registry=self.registry,
        )
        self.hosts_processed = Counter(
            "awx_exporter_hosts_processed_total",
            "Total number of hosts processed by the exporter",
            registry=self.registry,
        )
        self.registry.register(_GaugeSnapshotCollector(self))

    @staticmethod
    def _check(family: str, labels: Sequence[Optional[str]]) -> LabelValues:
        spec = GAUGE_FAMILIES.get(family)
        if spec is None:
            raise ValueError(f"unknown metric family: {family}")
        if len(labels) != len(spec.labels):
            raise ValueError(
                f"{family} takes {len(spec.labels)} labels {spec.labels}, got {len(labels)}"
            )
        if any(v is None for v in labels):
            raise ValueError(f"{family}: label values must not be None: {tuple(labels)}")
        return tuple(str(v) for v in labels)

    def set(self, family: str, labels: Sequence[str], value: float):
        """Write or overwrite one series."""
        key = self._check(family, labels)
        with self._lock:
            updated = dict(self._series)
            updated[family] = {**updated[family], key: float(value)}
            self._series = updated

    def reset(self, family: str):
        """Drop every series of one family."""
        if family not in GAUGE_FAMILIES:
            raise ValueError(f"unknown metric family: {family}")
        with self._lock:
            updated = dict(self._series)
            updated[family] = {}
            self._series = updated

    def publish(self, observations: Iterable[Observation], families: Iterable[str]):
        """Replace `families` with exactly what `observations` describe.

        Every listed family is cleared first, so series missing from this
        batch (deleted or renamed entities) disappear. Families not listed
        keep their current series. Observations are applied in order; a
        repeated label tuple keeps the last value.
        """
        fresh: Dict[str, Series] = {}
        for family in families:
            if family not in GAUGE_FAMILIES:
                raise ValueError(f"unknown metric family: {family}")
            fresh[family] = {}

        for obs in observations:
            if obs.family not in fresh:
                raise ValueError(f"observation for {obs.family} which is not being published")
            fresh[obs.family][self._check(obs.family, obs.labels)] = float(obs.value)

        with self._lock:
            self._series = {**self._series, **fresh}

    def get(self, family: str, labels: Sequence[str]) -> Optional[float]:
        return self._series[family].get(tuple(labels))

    def snapshot(self) -> Dict[str, Series]:
        """A copy of every gauge family's current series."""
        current = self._series
        return {name: dict(series) for name, series in current.items()}

    def exposition(self) -> bytes:
        """Text exposition format of everything registered."""
        return generate_latest(self.registry)

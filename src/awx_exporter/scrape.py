"""
One full scrape: walk every collector's endpoint, transform, publish.

Observations are staged in memory and published once at the end. If any
page fails to fetch or decode, the exception propagates before anything
is published and the registry keeps the previous scrape's series.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from awx_exporter.collector.base import EntityCollector
from awx_exporter.collector.client import AWXClient
from awx_exporter.collector.hosts import HostCollector
from awx_exporter.collector.job_templates import JobTemplateCollector
from awx_exporter.collector.pagination import walk_pages
from awx_exporter.config import ExporterConfig
from awx_exporter.registry import MetricRegistry
from awx_exporter.transform import Observation

log = logging.getLogger(__name__)

# Log progress every N entities on big pages
PROGRESS_EVERY = 50


@dataclass
class ScrapeResult:
    pages: int = 0
    observations: int = 0
    entities: Dict[str, int] = field(default_factory=dict)

    @property
    def hosts(self) -> int:
        return self.entities.get("hosts", 0)


def default_collectors(config: ExporterConfig) -> List[EntityCollector]:
    collectors: List[EntityCollector] = [HostCollector()]
    if config.job_templates:
        collectors.append(JobTemplateCollector())
    return collectors


class Scraper:

    def __init__(
        self,
        client: AWXClient,
        registry: MetricRegistry,
        collectors: Sequence[EntityCollector],
        max_pages: Optional[int] = None,
    ):
        self._client = client
        self._registry = registry
        self._collectors = list(collectors)
        self._max_pages = max_pages

    def scrape(self) -> ScrapeResult:
        """Fetch everything and publish it. Raises ExporterError on failure."""
        result = ScrapeResult()
        staged: List[Observation] = []
        families: List[str] = []

        for collector in self._collectors:
            families.extend(collector.families)
            count = 0
            for page in walk_pages(self._client, collector.endpoint, collector.parse_page, self._max_pages):
                result.pages += 1
                total = len(page.results)
                for i, entity in enumerate(page.results):
                    staged.extend(collector.observe(entity))
                    if total > 100 and (i + 1) % PROGRESS_EVERY == 0:
                        log.debug("Processed %d/%d %s", i + 1, total, collector.name())
                count += total
            result.entities[collector.name()] = count

        self._registry.publish(staged, families)
        result.observations = len(staged)
        self._registry.hosts_processed.inc(result.hosts)
        return result

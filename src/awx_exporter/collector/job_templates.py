"""Collector for /api/v2/job_templates/: last run time and inventory host health."""

from __future__ import annotations

from typing import List, Optional

from awx_exporter.collector.base import EntityCollector
from awx_exporter.models import JobTemplate, Page, decode_page
from awx_exporter.transform import JOB_TEMPLATE_FAMILIES, Observation, job_template_observations


class JobTemplateCollector(EntityCollector):

    endpoint = "/api/v2/job_templates/?format=json"
    families = JOB_TEMPLATE_FAMILIES

    def parse_page(self, body: bytes, url: Optional[str] = None) -> Page[JobTemplate]:
        return decode_page(body, JobTemplate.from_dict, url=url)

    def observe(self, entity: JobTemplate) -> List[Observation]:
        return job_template_observations(entity)

    def name(self) -> str:
        return "job templates"

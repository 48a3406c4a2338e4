"""Collector for /api/v2/hosts/: host info, status, timestamps and group membership."""

from __future__ import annotations

from typing import List, Optional

from awx_exporter.collector.base import EntityCollector
from awx_exporter.models import Host, Page, decode_page
from awx_exporter.transform import HOST_FAMILIES, Observation, host_observations


class HostCollector(EntityCollector):

    endpoint = "/api/v2/hosts/?format=json"
    families = HOST_FAMILIES

    def parse_page(self, body: bytes, url: Optional[str] = None) -> Page[Host]:
        return decode_page(body, Host.from_dict, url=url)

    def observe(self, entity: Host) -> List[Observation]:
        return host_observations(entity)

    def name(self) -> str:
        return "hosts"

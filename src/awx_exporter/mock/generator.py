"""
Mock AWX inventory generator.

Produces a fake but plausible AWX data set (hosts spread across a few
inventories and groups, job templates pointing at those inventories) so
we can develop and test without a Tower instance. Output is shaped like
the v2 API JSON, including paginated envelopes.
"""

from __future__ import annotations

import math
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

HOSTS_PATH = "/api/v2/hosts/"
JOB_TEMPLATES_PATH = "/api/v2/job_templates/"

INVENTORIES = [(1, "production"), (2, "staging"), (3, "lab")]
GROUP_NAMES = ["web", "db", "cache", "workers", "edge", "monitoring"]
TEMPLATE_NAMES = ["deploy", "patch", "backup", "restart services", "facts refresh"]

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _rfc3339(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class MockAWXInventory:

    def __init__(self, seed: int = 42, host_count: int = 25, template_count: int = 5,
                 page_size: int = 10):
        self._rng = random.Random(seed)
        self.page_size = page_size
        self._hosts = [self._make_host(i + 1) for i in range(host_count)]
        self._templates = [self._make_template(i + 1) for i in range(template_count)]

    def _make_host(self, host_id: int) -> Dict[str, Any]:
        rng = self._rng
        inv_id, inv_name = INVENTORIES[host_id % len(INVENTORIES)]
        created = _EPOCH + timedelta(hours=rng.randint(0, 24 * 90))
        modified = created + timedelta(minutes=rng.randint(0, 60 * 24 * 30))
        facts = modified + timedelta(minutes=rng.randint(1, 600)) if rng.random() > 0.3 else None

        # Roughly a fifth of hosts sit in no group at all
        group_count = 0 if rng.random() < 0.2 else rng.randint(1, 3)
        groups = []
        for name in rng.sample(GROUP_NAMES, group_count):
            group_id = inv_id * 100 + GROUP_NAMES.index(name)
            groups.append({"id": group_id, "name": f"{inv_name}-{name}"})

        return {
            "id": host_id,
            "type": "host",
            "url": f"{HOSTS_PATH}{host_id}/",
            "created": _rfc3339(created),
            "modified": _rfc3339(modified),
            "name": f"host{host_id:03d}.{inv_name}.example.com",
            "description": "",
            "inventory": inv_id,
            "enabled": rng.random() > 0.1,
            "instance_id": f"i-{rng.getrandbits(32):08x}" if rng.random() > 0.5 else "",
            "variables": "",
            "has_active_failures": rng.random() < 0.15,
            "has_inventory_sources": rng.random() < 0.4,
            "ansible_facts_modified": _rfc3339(facts) if facts else None,
            "summary_fields": {
                "inventory": {"id": inv_id, "name": inv_name},
                "groups": {"count": len(groups), "results": groups},
            },
        }

    def _make_template(self, template_id: int) -> Dict[str, Any]:
        rng = self._rng
        name = TEMPLATE_NAMES[(template_id - 1) % len(TEMPLATE_NAMES)]
        summary: Dict[str, Any] = {}
        if rng.random() > 0.2:
            inv_id, inv_name = INVENTORIES[template_id % len(INVENTORIES)]
            total = sum(1 for h in self._hosts if h["inventory"] == inv_id)
            failed = sum(1 for h in self._hosts if h["inventory"] == inv_id and h["has_active_failures"])
            summary["inventory"] = {
                "id": inv_id,
                "name": inv_name,
                "hosts_with_active_failures": failed,
                "total_hosts": total,
            }
        last_run = _EPOCH + timedelta(days=90, minutes=rng.randint(0, 60 * 24 * 7))
        return {
            "id": template_id,
            "type": "job_template",
            "name": f"{name} {template_id}",
            "last_job_run": _rfc3339(last_run) if rng.random() > 0.25 else None,
            "summary_fields": summary,
        }

    def hosts(self) -> List[Dict[str, Any]]:
        return list(self._hosts)

    def job_templates(self) -> List[Dict[str, Any]]:
        return list(self._templates)

    def remove_host(self, host_id: int):
        self._hosts = [h for h in self._hosts if h["id"] != host_id]

    def page_count(self, items: List[Dict[str, Any]]) -> int:
        return max(1, math.ceil(len(items) / self.page_size))

    def page(self, path: str, page: int = 1) -> Optional[Dict[str, Any]]:
        """One page envelope for `path`, or None for an unknown path or page."""
        if path == HOSTS_PATH:
            items = self._hosts
        elif path == JOB_TEMPLATES_PATH:
            items = self._templates
        else:
            return None

        pages = self.page_count(items)
        if page < 1 or page > pages:
            return None

        start = (page - 1) * self.page_size
        # AWX returns relative links with the original query string kept
        next_link = f"{path}?format=json&page={page + 1}" if page < pages else None
        prev_link = f"{path}?format=json&page={page - 1}" if page > 1 else None
        return {
            "count": len(items),
            "next": next_link,
            "previous": prev_link,
            "results": items[start:start + self.page_size],
        }

"""
Maps AWX entities to metric observations.

Everything here is pure: an entity goes in, a list of Observations comes
out, nothing touches the network or the registry. Label tuples are built
in one place per entity type so their order always matches the family
schemas in registry.GAUGE_FAMILIES.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from awx_exporter.errors import TimestampParseError
from awx_exporter.models import Group, Host, JobTemplate

log = logging.getLogger(__name__)

HOST_INFO = "awx_host_info"
HOST_STATUS = "awx_host_status"
HOST_TIMESTAMPS = "awx_host_timestamps"
HOST_GROUP_MEMBERSHIP = "awx_host_group_membership"
GROUP_INFO = "awx_group_info"
JOB_TEMPLATE_LAST_RUN = "awx_job_template_last_run_timestamp"
JOB_TEMPLATE_FAILED_HOSTS = "awx_job_template_failed_hosts"
JOB_TEMPLATE_TOTAL_HOSTS = "awx_job_template_total_hosts"

HOST_FAMILIES = (HOST_INFO, HOST_STATUS, HOST_TIMESTAMPS, HOST_GROUP_MEMBERSHIP, GROUP_INFO)
JOB_TEMPLATE_FAMILIES = (JOB_TEMPLATE_LAST_RUN, JOB_TEMPLATE_FAILED_HOSTS, JOB_TEMPLATE_TOTAL_HOSTS)

# Group label used for status series of hosts that are in no group
NO_GROUP = "none"

# RFC3339: date, 'T', time, optional fraction, mandatory offset
_RFC3339_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})T(\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|z|[+-]\d{2}:\d{2})$"
)


@dataclass(frozen=True)
class Observation:
    """One gauge write: which family, which series, what value."""

    family: str
    labels: Tuple[str, ...]
    value: float


def parse_timestamp(value: Optional[str]) -> float:
    """RFC3339 string -> Unix epoch seconds (whole seconds).

    Raises TimestampParseError for anything else, including timestamps
    without a UTC offset.
    """
    if not value:
        raise TimestampParseError(value)

    match = _RFC3339_RE.match(value.strip())
    if not match:
        raise TimestampParseError(value)

    date, time_part, fraction, offset = match.groups()
    # fromisoformat wants exactly 6 fractional digits on older Pythons
    micros = (fraction or "")[:6].ljust(6, "0")
    if offset in ("Z", "z"):
        offset = "+00:00"

    try:
        parsed = datetime.fromisoformat(f"{date}T{time_part}.{micros}{offset}")
    except ValueError as exc:
        raise TimestampParseError(value) from exc

    return float(int(parsed.timestamp()))


def _bool_value(flag: bool) -> float:
    return 1.0 if flag else 0.0


def _host_labels(host: Host) -> Tuple[str, str]:
    return str(host.id), host.name


def _group_labels(group: Group) -> Tuple[str, str]:
    return str(group.id), group.name


def host_observations(host: Host) -> List[Observation]:
    """All metric writes for one host.

    Status is denormalized across group labels so it can be sliced by
    group downstream: one pair per group, or one pair labelled "none".
    """
    host_id, host_name = _host_labels(host)
    inventory_id = str(host.inventory.id)
    out: List[Observation] = []

    out.append(Observation(
        HOST_INFO,
        (host_id, host_name, inventory_id, host.inventory.name,
         "true" if host.enabled else "false", host.instance_id),
        1.0,
    ))

    active_failures = _bool_value(host.has_active_failures)
    inventory_sources = _bool_value(host.has_inventory_sources)
    group_names = [g.name for g in host.groups] or [NO_GROUP]
    for group_name in group_names:
        out.append(Observation(HOST_STATUS, (host_id, host_name, "active_failures", group_name), active_failures))
        out.append(Observation(HOST_STATUS, (host_id, host_name, "inventory_sources", group_name), inventory_sources))

    events = [("created", host.created), ("modified", host.modified)]
    if host.ansible_facts_modified is not None:
        events.append(("ansible_facts_modified", host.ansible_facts_modified))
    for event, raw in events:
        try:
            ts = parse_timestamp(raw)
        except TimestampParseError as exc:
            log.warning("Skipping %s timestamp for host %s (ID: %s): %s", event, host_name, host_id, exc)
            continue
        out.append(Observation(HOST_TIMESTAMPS, (host_id, host_name, event), ts))

    for group in host.groups:
        group_id, group_name = _group_labels(group)
        out.append(Observation(HOST_GROUP_MEMBERSHIP, (host_id, host_name, group_id, group_name), 1.0))
        # Same group reported by many hosts lands on the same series
        out.append(Observation(GROUP_INFO, (group_id, group_name, inventory_id), 1.0))

    return out


def job_template_observations(template: JobTemplate) -> List[Observation]:
    labels = (str(template.id), template.name)
    out: List[Observation] = []

    if template.last_job_run is not None:
        try:
            out.append(Observation(JOB_TEMPLATE_LAST_RUN, labels, parse_timestamp(template.last_job_run)))
        except TimestampParseError as exc:
            log.warning("Skipping last run timestamp for job template %s (ID: %s): %s",
                        template.name, template.id, exc)

    summary = template.inventory_summary
    if summary is not None:
        out.append(Observation(JOB_TEMPLATE_FAILED_HOSTS, labels, float(summary.hosts_with_active_failures)))
        out.append(Observation(JOB_TEMPLATE_TOTAL_HOSTS, labels, float(summary.total_hosts)))

    return out

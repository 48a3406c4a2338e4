"""Tests for mapping hosts and job templates to metric observations."""

import logging

import pytest

from awx_exporter.errors import TimestampParseError
from awx_exporter.models import Group, Host, Inventory, InventorySummary, JobTemplate
from awx_exporter.transform import (
    GROUP_INFO,
    HOST_GROUP_MEMBERSHIP,
    HOST_INFO,
    HOST_STATUS,
    HOST_TIMESTAMPS,
    JOB_TEMPLATE_FAILED_HOSTS,
    JOB_TEMPLATE_LAST_RUN,
    JOB_TEMPLATE_TOTAL_HOSTS,
    host_observations,
    job_template_observations,
    parse_timestamp,
)


def _make_host(**overrides) -> Host:
    defaults = dict(
        id=7,
        name="web01",
        created="2024-01-01T00:00:00Z",
        modified="2024-01-02T00:00:00.123456Z",
        inventory=Inventory(3, "production"),
        enabled=True,
        instance_id="i-123",
        has_active_failures=True,
        has_inventory_sources=False,
    )
    defaults.update(overrides)
    return Host(**defaults)


def _by_family(observations, family):
    return [o for o in observations if o.family == family]


def test_parse_timestamp():
    assert parse_timestamp("1970-01-01T00:01:00Z") == 60.0
    assert parse_timestamp("2024-01-01T00:00:00.999999Z") == 1704067200.0
    assert parse_timestamp("2024-01-01T02:00:00+02:00") == 1704067200.0
    assert parse_timestamp("2024-01-01T00:00:00.5+00:00") == 1704067200.0


@pytest.mark.parametrize("bad", ["", None, "yesterday", "2024-01-01", "2024-01-01T00:00:00", "2024-13-01T00:00:00Z"])
def test_parse_timestamp_rejects(bad):
    with pytest.raises(TimestampParseError):
        parse_timestamp(bad)


def test_host_without_groups():
    obs = host_observations(_make_host())

    status = _by_family(obs, HOST_STATUS)
    assert len(status) == 2
    assert {o.labels for o in status} == {
        ("7", "web01", "active_failures", "none"),
        ("7", "web01", "inventory_sources", "none"),
    }
    assert {o.labels[2]: o.value for o in status} == {"active_failures": 1.0, "inventory_sources": 0.0}
    assert _by_family(obs, HOST_GROUP_MEMBERSHIP) == []
    assert _by_family(obs, GROUP_INFO) == []


def test_host_with_groups_fans_out_status():
    host = _make_host(groups=[Group(10, "web"), Group(11, "edge"), Group(12, "eu")])
    obs = host_observations(host)

    status = _by_family(obs, HOST_STATUS)
    assert len(status) == 6
    assert {o.labels[3] for o in status} == {"web", "edge", "eu"}
    assert all(o.value == 1.0 for o in status if o.labels[2] == "active_failures")

    membership = _by_family(obs, HOST_GROUP_MEMBERSHIP)
    assert [o.labels for o in membership] == [
        ("7", "web01", "10", "web"),
        ("7", "web01", "11", "edge"),
        ("7", "web01", "12", "eu"),
    ]
    assert [o.labels for o in _by_family(obs, GROUP_INFO)] == [
        ("10", "web", "3"), ("11", "edge", "3"), ("12", "eu", "3"),
    ]


@pytest.mark.parametrize("enabled, label", [(True, "true"), (False, "false")])
def test_info_enabled_label(enabled, label):
    info = _by_family(host_observations(_make_host(enabled=enabled)), HOST_INFO)
    assert len(info) == 1
    assert info[0].labels == ("7", "web01", "3", "production", label, "i-123")
    assert info[0].value == 1.0


def test_timestamps():
    obs = host_observations(_make_host(ansible_facts_modified="2024-01-03T00:00:00Z"))
    stamps = {o.labels[2]: o.value for o in _by_family(obs, HOST_TIMESTAMPS)}
    assert stamps == {
        "created": 1704067200.0,
        "modified": 1704153600.0,
        "ansible_facts_modified": 1704240000.0,
    }


def test_facts_modified_only_when_present():
    obs = host_observations(_make_host(ansible_facts_modified=None))
    events = [o.labels[2] for o in _by_family(obs, HOST_TIMESTAMPS)]
    assert events == ["created", "modified"]


def test_bad_modified_only_drops_that_metric(caplog):
    host = _make_host(modified="not a date", groups=[Group(10, "web")])
    with caplog.at_level(logging.WARNING):
        obs = host_observations(host)

    events = [o.labels[2] for o in _by_family(obs, HOST_TIMESTAMPS)]
    assert events == ["created"]
    assert len(_by_family(obs, HOST_INFO)) == 1
    assert len(_by_family(obs, HOST_STATUS)) == 2
    assert len(_by_family(obs, HOST_GROUP_MEMBERSHIP)) == 1
    assert len(_by_family(obs, GROUP_INFO)) == 1
    assert "modified" in caplog.text and "web01" in caplog.text


def test_same_input_gives_same_observations():
    host = _make_host(groups=[Group(10, "web")])
    assert host_observations(host) == host_observations(host)


def test_job_template():
    tpl = JobTemplate(
        id=4, name="deploy", last_job_run="2024-01-01T00:00:00Z",
        inventory_summary=InventorySummary(hosts_with_active_failures=2, total_hosts=9),
    )
    obs = {o.family: o for o in job_template_observations(tpl)}
    assert obs[JOB_TEMPLATE_LAST_RUN].value == 1704067200.0
    assert obs[JOB_TEMPLATE_FAILED_HOSTS].value == 2.0
    assert obs[JOB_TEMPLATE_TOTAL_HOSTS].value == 9.0
    assert all(o.labels == ("4", "deploy") for o in obs.values())


def test_job_template_never_run_and_unparseable():
    never = JobTemplate(id=4, name="deploy", inventory_summary=InventorySummary(0, 3))
    assert JOB_TEMPLATE_LAST_RUN not in {o.family for o in job_template_observations(never)}

    garbled = JobTemplate(id=5, name="patch", last_job_run="last tuesday")
    assert job_template_observations(garbled) == []

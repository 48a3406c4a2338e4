"""Basic sanity checks for the mock AWX inventory generator."""

from awx_exporter.mock.generator import HOSTS_PATH, JOB_TEMPLATES_PATH, MockAWXInventory
from awx_exporter.models import Host, JobTemplate


def test_hosts_decode_as_awx_hosts():
    inventory = MockAWXInventory(seed=42, host_count=30)
    hosts = [Host.from_dict(h) for h in inventory.hosts()]

    assert len(hosts) == 30
    assert len({h.id for h in hosts}) == 30
    assert any(not h.groups for h in hosts)
    assert any(h.groups for h in hosts)
    for t in inventory.job_templates():
        JobTemplate.from_dict(t)


def test_deterministic_with_same_seed():
    assert MockAWXInventory(seed=99).hosts() == MockAWXInventory(seed=99).hosts()


def test_pagination_envelopes():
    inventory = MockAWXInventory(host_count=25, page_size=10)

    first = inventory.page(HOSTS_PATH, 1)
    last = inventory.page(HOSTS_PATH, 3)

    assert first["count"] == 25
    assert first["next"] == "/api/v2/hosts/?format=json&page=2"
    assert first["previous"] is None
    assert len(last["results"]) == 5
    assert last["next"] is None
    assert inventory.page(HOSTS_PATH, 4) is None
    assert inventory.page("/api/v2/nope/", 1) is None
    assert inventory.page(JOB_TEMPLATES_PATH, 1)["next"] is None


def test_remove_host():
    inventory = MockAWXInventory(host_count=5)
    inventory.remove_host(3)
    assert [h["id"] for h in inventory.hosts()] == [1, 2, 4, 5]

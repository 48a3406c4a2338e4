"""Tests for the /metrics and /health endpoints."""

import threading
from datetime import datetime

import httpx
import pytest
from prometheus_client.parser import text_string_to_metric_families

from awx_exporter.registry import MetricRegistry
from awx_exporter.server import make_server
from awx_exporter.transform import HOST_INFO


@pytest.fixture
def exporter():
    registry = MetricRegistry()
    server = make_server(registry, host="127.0.0.1", port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield registry, f"http://{host}:{port}"
    server.shutdown()
    server.server_close()


def test_health(exporter):
    _, base = exporter
    response = httpx.get(f"{base}/health")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    body = response.json()
    assert body["status"] == "healthy"
    assert body["service"] == "awx-exporter"
    assert datetime.fromisoformat(body["timestamp"]).tzinfo is not None


def test_metrics_serves_current_snapshot(exporter):
    registry, base = exporter
    registry.set(HOST_INFO, ("7", "web01", "3", "production", "true", ""), 1)

    response = httpx.get(f"{base}/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")

    families = {m.name: m for m in text_string_to_metric_families(response.text)}
    assert families[HOST_INFO].samples[0].labels["name"] == "web01"
    assert any(name.startswith("awx_exporter_scrape_errors") for name in families)
    assert "awx_exporter_scrape_duration_seconds" in families


def test_unknown_path_is_404(exporter):
    _, base = exporter
    assert httpx.get(f"{base}/api").status_code == 404

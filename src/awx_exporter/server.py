"""
HTTP surface: /metrics for Prometheus, /health for liveness probes.

Requests only read the registry's current snapshot, so a slow AWX API
never delays a response.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from prometheus_client import CONTENT_TYPE_LATEST

from awx_exporter.registry import MetricRegistry

log = logging.getLogger(__name__)

SERVICE_NAME = "awx-exporter"


def health_payload() -> dict:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "service": SERVICE_NAME,
    }


class _ExporterHandler(BaseHTTPRequestHandler):
    # Set per server class by make_server()
    registry: MetricRegistry

    def do_GET(self):
        path = self.path.split("?", 1)[0]
        if path == "/metrics":
            self._send(200, CONTENT_TYPE_LATEST, self.registry.exposition())
        elif path == "/health":
            body = json.dumps(health_payload()).encode()
            self._send(200, "application/json", body)
        else:
            self._send(404, "text/plain; charset=utf-8", b"not found\n")

    def _send(self, status: int, content_type: str, body: bytes):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        log.debug("%s - %s", self.address_string(), format % args)


def make_server(registry: MetricRegistry, host: str = "0.0.0.0", port: int = 8080) -> ThreadingHTTPServer:
    """Bind the exporter's HTTP server. Raises OSError if the port is taken."""
    handler = type("ExporterHandler", (_ExporterHandler,), {"registry": registry})
    server = ThreadingHTTPServer((host, port), handler)
    server.daemon_threads = True
    return server

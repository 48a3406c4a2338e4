"""
Fake AWX API server for testing without a Tower instance.

    python -m awx_exporter.mock.fake_awx_server
    AWX_HOST=127.0.0.1:9180 HTTP=true AWX_USER=admin AWX_PASSWORD=password awx-exporter
"""

from __future__ import annotations

import base64
import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Set, Tuple
from urllib.parse import parse_qs, urlsplit

from awx_exporter.mock.generator import MockAWXInventory

DEFAULT_USER = "admin"
DEFAULT_PASSWORD = "password"


class FakeAWXServer(ThreadingHTTPServer):
    """HTTP server holding the mock inventory and some failure switches for tests."""

    daemon_threads = True

    def __init__(self, address: Tuple[str, int], inventory: Optional[MockAWXInventory] = None,
                 user: str = DEFAULT_USER, password: str = DEFAULT_PASSWORD):
        super().__init__(address, _AWXHandler)
        self.inventory = inventory or MockAWXInventory()
        token = base64.b64encode(f"{user}:{password}".encode()).decode()
        self.expected_auth = f"Basic {token}"
        # (path, page) pairs that answer with a truncated JSON body
        self.broken_pages: Set[Tuple[str, int]] = set()
        # When set, every API request gets this status code
        self.force_status: Optional[int] = None
        self.serve_login_page = False
        self.requests = 0

    @property
    def url_host(self) -> str:
        host, port = self.server_address[:2]
        return f"{host}:{port}"

    def start_in_thread(self) -> threading.Thread:
        thread = threading.Thread(target=self.serve_forever, daemon=True)
        thread.start()
        return thread


class _AWXHandler(BaseHTTPRequestHandler):
    server: FakeAWXServer

    def do_GET(self):
        self.server.requests += 1
        parts = urlsplit(self.path)
        query = parse_qs(parts.query)

        if self.headers.get("Authorization") != self.server.expected_auth:
            self._send_json(401, {"detail": "Authentication credentials were not provided."})
            return

        if self.server.force_status is not None:
            self._send_json(self.server.force_status, {"detail": "forced failure"})
            return

        if self.server.serve_login_page:
            body = b"<!DOCTYPE html><html><head><title>Login</title></head><body></body></html>"
            self._send(200, "text/html; charset=utf-8", body)
            return

        try:
            page = int(query.get("page", ["1"])[0])
        except ValueError:
            page = 0

        payload = self.server.inventory.page(parts.path, page)
        if payload is None:
            self._send_json(404, {"detail": "Not found."})
            return

        body = json.dumps(payload).encode()
        if (parts.path, page) in self.server.broken_pages:
            body = body[: len(body) // 2]
        self._send(200, "application/json", body)

    def _send_json(self, status: int, payload: dict):
        self._send(status, "application/json", json.dumps(payload).encode())

    def _send(self, status: int, content_type: str, body: bytes):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


def run_fake_server(host: str = "127.0.0.1", port: int = 9180):
    server = FakeAWXServer((host, port))
    print(f"Fake AWX API running at http://{host}:{port}/api/v2/hosts/")
    print(f"Credentials: {DEFAULT_USER} / {DEFAULT_PASSWORD}")
    print("Press Ctrl+C to stop.\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    server.server_close()
    print("\nServer stopped.")


if __name__ == "__main__":
    run_fake_server()

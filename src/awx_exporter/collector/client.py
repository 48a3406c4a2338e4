"""
HTTP client for the AWX v2 API.

One pooled httpx.Client per exporter. A scrape issues many sequential
paginated requests against the same host, so connections are kept alive
between pages and between scrapes.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from awx_exporter import __version__
from awx_exporter.config import ExporterConfig
from awx_exporter.errors import APIError, TransportError, UnexpectedContentError, snippet

log = logging.getLogger(__name__)

MAX_CONNECTIONS = 100
MAX_KEEPALIVE_CONNECTIONS = 10
KEEPALIVE_EXPIRY = 90.0

# Login pages and reverse-proxy error pages, usually reached through a redirect
_HTML_MARKER = b"<html"


class AWXClient:

    def __init__(self, config: ExporterConfig, transport: Optional[httpx.BaseTransport] = None):
        self._base_url = config.base_url
        self._timeout = config.timeout
        self._client = httpx.Client(
            auth=httpx.BasicAuth(config.user, config.password),
            headers={
                "Accept": "application/json",
                "User-Agent": f"awx-exporter/{__version__}",
            },
            timeout=self._timeout,
            verify=not config.tls_insecure,
            limits=httpx.Limits(
                max_connections=MAX_CONNECTIONS,
                max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
                keepalive_expiry=KEEPALIVE_EXPIRY,
            ),
            transport=transport,
            # A redirect to a login page must reach the HTML check below
            follow_redirects=True,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def build_url(self, path_or_url: Optional[str]) -> Optional[str]:
        """Turn a path or a "next" link into a fetchable URL.

        Returns None when the link means there are no more pages.
        """
        if not path_or_url or path_or_url == "/":
            return None
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        if not path_or_url.startswith("/"):
            path_or_url = "/" + path_or_url
        return self._base_url + path_or_url

    def fetch(self, url: str) -> bytes:
        """GET a URL and return the raw body.

        Raises TransportError, APIError or UnexpectedContentError. The body
        is not parsed here.
        """
        log.debug("GET %s", url)
        try:
            response = self._client.get(url)
        except httpx.TimeoutException as exc:
            raise TransportError(url, f"timed out after {self._timeout}s") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(url, str(exc) or type(exc).__name__) from exc

        body = response.content
        if not response.is_success:
            raise APIError(url, response.status_code, snippet(body))

        if _HTML_MARKER in body.lower():
            raise UnexpectedContentError(url)

        return body

    def close(self):
        self._client.close()

    def __enter__(self) -> "AWXClient":
        return self

    def __exit__(self, *exc_info):
        self.close()

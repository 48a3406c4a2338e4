"""
Exception types for the exporter.

Everything a scrape can fail with derives from ExporterError, so the
scheduler can catch one type at the scrape boundary. ConfigError is the
only one that is fatal, and only at startup.
"""

from __future__ import annotations

from typing import Optional

# How much of an upstream body we keep around for diagnostics
SNIPPET_LENGTH = 200


def snippet(body: bytes | str, length: int = SNIPPET_LENGTH) -> str:
    """First `length` characters of a response body, for log lines and errors."""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if len(body) > length:
        return body[:length] + "..."
    return body


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigError(ExporterError):
    """Missing or invalid startup configuration."""


class TransportError(ExporterError):
    """Could not reach the AWX API (connection failure, timeout)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"request to {url} failed: {reason}")
        self.url = url
        self.reason = reason


class APIError(ExporterError):
    """AWX answered with a non-2xx status."""

    def __init__(self, url: str, status_code: int, body: str = ""):
        super().__init__(f"API request to {url} failed with status {status_code}: {body}")
        self.url = url
        self.status_code = status_code
        self.body = body


class UnexpectedContentError(ExporterError):
    """Got an HTML page (usually a login or proxy error page) instead of JSON."""

    def __init__(self, url: str):
        super().__init__(f"received HTML instead of JSON from {url} (likely an error or login page)")
        self.url = url


class DecodeError(ExporterError):
    """Response body is not valid JSON, or not shaped like an AWX page."""

    def __init__(self, message: str, url: Optional[str] = None):
        if url:
            message = f"{message} (from {url})"
        super().__init__(message)
        self.url = url


class PageLimitError(ExporterError):
    """Pagination ran past the configured page cap."""

    def __init__(self, start: str, max_pages: int):
        super().__init__(f"pagination from {start} exceeded {max_pages} pages, aborting")
        self.start = start
        self.max_pages = max_pages


class TimestampParseError(ExporterError):
    """A single timestamp field could not be parsed as RFC3339."""

    def __init__(self, value: object):
        super().__init__(f"not an RFC3339 timestamp: {value!r}")
        self.value = value

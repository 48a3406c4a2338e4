"""
Exporter configuration, read from environment variables.

    AWX_HOST, AWX_USER, AWX_PASSWORD   required
    HTTP=true                          talk plain http instead of https
    TLS_INSECURE=true                  skip certificate verification
    SCRAPE_INTERVAL                    minutes ("5") or a duration ("30s", "1h30m")
    PORT                               listen port for /metrics and /health
    AWX_TIMEOUT, AWX_MAX_PAGES, AWX_JOB_TEMPLATES
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from awx_exporter.errors import ConfigError

DEFAULT_SCRAPE_INTERVAL = 300.0
DEFAULT_PORT = 8080
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_PAGES = 1000

_TRUE_VALUES = ("true", "1", "yes", "on")
_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass
class ExporterConfig:
    host: str
    user: str
    password: str = field(repr=False)
    use_http: bool = False
    tls_insecure: bool = False
    scrape_interval: float = DEFAULT_SCRAPE_INTERVAL
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    max_pages: int = DEFAULT_MAX_PAGES
    job_templates: bool = True

    @property
    def scheme(self) -> str:
        return "http" if self.use_http else "https"

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}"

    def validate(self):
        for name, value in (("AWX_HOST", self.host), ("AWX_USER", self.user),
                            ("AWX_PASSWORD", self.password)):
            if not value:
                raise ConfigError(f"{name} environment variable is required")
        if self.scrape_interval <= 0:
            raise ConfigError(f"scrape interval must be positive, got {self.scrape_interval}")
        if not 0 < self.port < 65536:
            raise ConfigError(f"port out of range: {self.port}")
        if self.timeout <= 0:
            raise ConfigError(f"request timeout must be positive, got {self.timeout}")
        if self.max_pages < 1:
            raise ConfigError(f"max pages must be at least 1, got {self.max_pages}")


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    if not value:
        return default
    return value.strip().lower() in _TRUE_VALUES


def parse_duration(value: str) -> float:
    """Parse a scrape interval into seconds.

    A bare integer is minutes, which is what older deployments set
    SCRAPE_INTERVAL to. Otherwise unit-suffixed durations are accepted:
    "90s", "5m", "1h30m", "250ms".
    """
    text = value.strip()
    if text.isdigit():
        minutes = int(text)
        if minutes <= 0:
            raise ConfigError(f"invalid duration {value!r}: must be positive")
        return minutes * 60.0

    pos = 0
    total = 0.0
    for match in _DURATION_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    if not text or pos != len(text):
        raise ConfigError(f"invalid duration {value!r}")
    if total <= 0:
        raise ConfigError(f"invalid duration {value!r}: must be positive")
    return total


def _parse_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None


def _parse_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None


def load_config(environ: Mapping[str, str]) -> ExporterConfig:
    """Build and validate the config. Raises ConfigError on anything missing or malformed."""
    interval = environ.get("SCRAPE_INTERVAL")

    config = ExporterConfig(
        host=environ.get("AWX_HOST", "").strip(),
        user=environ.get("AWX_USER", ""),
        password=environ.get("AWX_PASSWORD", ""),
        use_http=parse_bool(environ.get("HTTP")),
        tls_insecure=parse_bool(environ.get("TLS_INSECURE")),
        scrape_interval=parse_duration(interval) if interval else DEFAULT_SCRAPE_INTERVAL,
        port=_parse_int(environ, "PORT", DEFAULT_PORT),
        timeout=_parse_float(environ, "AWX_TIMEOUT", DEFAULT_TIMEOUT),
        max_pages=_parse_int(environ, "AWX_MAX_PAGES", DEFAULT_MAX_PAGES),
        job_templates=parse_bool(environ.get("AWX_JOB_TEMPLATES"), default=True),
    )
    config.validate()
    return config

"""
Base collector interface.

A collector knows one AWX list endpoint: where it starts, how to decode
its pages, which gauge families it owns and how each entity maps to
observations. The scraper drives pagination and publishing, so
collectors stay free of network and registry concerns.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from awx_exporter.models import Page
from awx_exporter.transform import Observation


class EntityCollector(ABC):
    """Interface for all AWX entity sources."""

    endpoint: str = ""
    families: Tuple[str, ...] = ()

    @abstractmethod
    def parse_page(self, body: bytes, url: Optional[str] = None) -> Page:
        """Decode one page body into entities."""
        ...

    @abstractmethod
    def observe(self, entity: Any) -> List[Observation]:
        """Map one entity to its metric writes."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

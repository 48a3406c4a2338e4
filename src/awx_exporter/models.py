"""
AWX API entities, decoded from the v2 JSON responses.

Only the fields the exporter turns into metrics are read. Missing nested
objects fall back to zero values (id 0, empty name) the way AWX clients
usually treat them; a wrong type on a field we need is a DecodeError.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from awx_exporter.errors import DecodeError, snippet

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Inventory:
    id: int = 0
    name: str = ""


@dataclass
class Group:
    id: int
    name: str


@dataclass
class InventorySummary:
    """Host health counts AWX embeds in a job template's summary_fields."""

    hosts_with_active_failures: int = 0
    total_hosts: int = 0


@dataclass
class Host:
    id: int
    name: str
    created: str
    modified: str
    inventory: Inventory = field(default_factory=Inventory)
    enabled: bool = False
    instance_id: str = ""
    has_active_failures: bool = False
    has_inventory_sources: bool = False
    ansible_facts_modified: Optional[str] = None
    groups: List[Group] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Host":
        summary = _object(data, "summary_fields")
        inv = _object(summary, "inventory")
        groups_block = _object(summary, "groups")

        return cls(
            id=_int(data, "id"),
            name=_str(data, "name"),
            created=_str(data, "created", ""),
            modified=_str(data, "modified", ""),
            inventory=Inventory(id=_int(inv, "id", 0), name=_str(inv, "name", "")),
            enabled=_bool(data, "enabled"),
            instance_id=_str(data, "instance_id", ""),
            has_active_failures=_bool(data, "has_active_failures"),
            has_inventory_sources=_bool(data, "has_inventory_sources"),
            ansible_facts_modified=_str(data, "ansible_facts_modified", None) or None,
            groups=[
                Group(id=_int(g, "id"), name=_str(g, "name"))
                for g in _list(groups_block, "results")
            ],
        )


@dataclass
class JobTemplate:
    id: int
    name: str
    last_job_run: Optional[str] = None
    # None when the template has no inventory attached (prompt on launch)
    inventory_summary: Optional[InventorySummary] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobTemplate":
        summary = _object(data, "summary_fields")
        inv = summary.get("inventory")
        inventory_summary = None
        if isinstance(inv, dict):
            inventory_summary = InventorySummary(
                hosts_with_active_failures=_int(inv, "hosts_with_active_failures", 0),
                total_hosts=_int(inv, "total_hosts", 0),
            )

        return cls(
            id=_int(data, "id"),
            name=_str(data, "name"),
            last_job_run=_str(data, "last_job_run", None) or None,
            inventory_summary=inventory_summary,
        )


@dataclass
class Page(Generic[T]):
    """One page of a paginated AWX list endpoint."""

    results: List[T]
    next: Optional[str] = None
    previous: Optional[str] = None
    count: int = 0


def decode_page(
    body: bytes,
    parse_entity: Callable[[Dict[str, Any]], T],
    url: Optional[str] = None,
) -> Page[T]:
    """Decode a raw response body into a Page of entities.

    Raises DecodeError for invalid JSON or anything not shaped like
    {"count": .., "next": .., "results": [..]}.
    """
    try:
        payload = json.loads(body)
    except ValueError as exc:
        log.warning("Response preview: %s", snippet(body))
        raise DecodeError(f"error parsing JSON: {exc}", url=url) from exc

    if not isinstance(payload, dict):
        raise DecodeError(f"expected a JSON object, got {type(payload).__name__}", url=url)

    results = payload.get("results")
    if not isinstance(results, list):
        raise DecodeError("page has no results list", url=url)

    next_link = payload.get("next")
    if next_link is not None and not isinstance(next_link, str):
        raise DecodeError(f"unexpected next link: {next_link!r}", url=url)

    entities = []
    for item in results:
        if not isinstance(item, dict):
            raise DecodeError(f"expected an object in results, got {type(item).__name__}", url=url)
        try:
            entities.append(parse_entity(item))
        except (KeyError, TypeError, ValueError) as exc:
            raise DecodeError(f"malformed entity {item.get('id', '?')}: {exc}", url=url) from exc

    count = payload.get("count")
    return Page(
        results=entities,
        next=next_link,
        previous=payload.get("previous") if isinstance(payload.get("previous"), str) else None,
        count=count if isinstance(count, int) else len(entities),
    )


# Field accessors. A missing key with no default raises KeyError, a wrong
# type raises TypeError; decode_page turns both into DecodeError.

_MISSING = object()


def _get(data: Dict[str, Any], key: str, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        if default is _MISSING:
            raise KeyError(key)
        return default
    return value


def _int(data: Dict[str, Any], key: str, default: Any = _MISSING) -> int:
    value = _get(data, key, default)
    # bool is an int subclass, and never a valid id or count
    if isinstance(value, bool) or not isinstance(value, int):
        if value is default:
            return value
        raise TypeError(f"{key} should be an integer, got {value!r}")
    return value


def _str(data: Dict[str, Any], key: str, default: Any = _MISSING) -> Any:
    value = _get(data, key, default)
    if not isinstance(value, str):
        if value is default:
            return value
        raise TypeError(f"{key} should be a string, got {value!r}")
    return value


def _bool(data: Dict[str, Any], key: str) -> bool:
    value = data.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise TypeError(f"{key} should be a boolean, got {value!r}")
    return value


def _object(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"{key} should be an object, got {value!r}")
    return value


def _list(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise TypeError(f"{key} should be a list of objects, got {value!r}")
    return value

"""Option maps and the rules for combining them."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping


MERGEABLE_OPTIONS = frozenset({"cookies", "data", "files", "headers", "json", "params"})

DEFAULT_OPTIONS: Mapping[str, Any] = {
    "connect_timeout": 5,
    "timeout": 5,
    "allow_redirects": {"max": 5},
    "verify": True,
}


class BodyFormat(str, Enum):
    """Encoding of the outgoing body, valued by the option key that carries it."""

    JSON = "json"
    FORM = "data"
    MULTIPART = "files"
    BODY = "content"


def _merge_mapping(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _merge_mapping(current, value)
        else:
            merged[key] = value
    return merged


def _merge_value(base: Any, override: Any) -> Any:
    if isinstance(base, Mapping) and isinstance(override, Mapping):
        return _merge_mapping(base, override)
    if isinstance(base, (list, tuple)) and isinstance(override, (list, tuple)):
        return [*base, *override]
    return override


def merge_options(base: Mapping[str, Any], *overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    """Combine ``base`` with ``overrides`` into a new option map.

    Keys in :data:`MERGEABLE_OPTIONS` are combined: mappings merge (override
    wins on collisions) and lists concatenate base-then-override. Every other
    key takes the last value found. ``None`` values count as absent.
    """
    merged = dict(base)
    for override in overrides:
        if not override:
            continue
        for key, value in override.items():
            if value is None:
                continue
            if key in MERGEABLE_OPTIONS and merged.get(key) is not None:
                merged[key] = _merge_value(merged[key], value)
            else:
                merged[key] = value
    return merged


def without_header(options: Mapping[str, Any], name: str) -> dict[str, Any]:
    """Return ``options`` with header ``name`` removed, matched case-insensitively."""
    headers = options.get("headers") or {}
    stripped = dict(options)
    stripped["headers"] = {key: value for key, value in headers.items() if key.lower() != name.lower()}
    return stripped

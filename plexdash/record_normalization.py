from __future__ import annotations

import re
from typing import Any, Mapping

from .field_kinds import KEY_ALIASES

RAW_RECORD_KEYS = ("raw_data", "rawData")
MEDIA_TYPE_KEYS = ("mediaType", "media_type", "type")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def _aliasable(key: str) -> bool:
    return bool(key) and not key.startswith("_") and not key.endswith("_") and "__" not in key


def camel_to_snake(key: str) -> str:
    if not _aliasable(key):
        return key
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def snake_to_camel(key: str) -> str:
    if not _aliasable(key) or "_" not in key:
        return key
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def case_alias(key: str) -> str | None:
    if "_" in key:
        alias = snake_to_camel(key)
    elif any(ch.isupper() for ch in key):
        alias = camel_to_snake(key)
    else:
        return None
    return alias if alias != key else None


def _with_aliases(fields: Mapping[str, Any]) -> dict[str, Any]:
    expanded = {key: value for key, value in fields.items() if isinstance(key, str)}
    for key in list(expanded):
        alias = case_alias(key)
        if alias is not None and alias not in expanded:
            expanded[alias] = expanded[key]
    return expanded


def normalize_record(data: Any) -> dict[str, Any]:
    if not isinstance(data, Mapping):
        return {}

    raw: Mapping[str, Any] = {}
    for raw_key in RAW_RECORD_KEYS:
        candidate = data.get(raw_key)
        if isinstance(candidate, Mapping):
            raw = candidate
            break

    flat = {key: value for key, value in data.items() if key not in RAW_RECORD_KEYS}
    normalized = _with_aliases(raw)
    normalized.update(_with_aliases(flat))
    return normalized


def lookup(record: Mapping[str, Any], key: str) -> Any:
    value = record.get(key)
    if value is not None:
        return value

    for canonical, aliases in KEY_ALIASES.items():
        if key == canonical:
            candidates: tuple[str, ...] = aliases
        elif key in aliases:
            candidates = (canonical, *[alias for alias in aliases if alias != key])
        else:
            continue
        for candidate in candidates:
            value = record.get(candidate)
            if value is not None:
                return value

    alias = case_alias(key)
    if alias is not None:
        return record.get(alias)
    return None


def same_field(key: str, canonical: str) -> bool:
    if key == canonical or key in KEY_ALIASES.get(canonical, ()):
        return True
    return case_alias(key) == canonical


def media_type_of(record: Mapping[str, Any]) -> str:
    for key in MEDIA_TYPE_KEYS:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip().lower()
    return ""

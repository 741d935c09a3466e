from __future__ import annotations

import logging
import threading
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any

from .config import Settings
from .field_kinds import CATEGORIES, CATEGORY_LIBRARIES
from .storage import read_json, write_json


logger = logging.getLogger(__name__)

SECTIONS_CONFIG_KEY = "sections_config"
SCOPE_FIELDS = ("sectionId", "mediaType")
DEFAULT_LIBRARY_MEDIA_TYPE = "movies"

# Guards read-modify-write of the formats file across request threads.
_STORE_GUARD = threading.Lock()


class FormatStoreError(ValueError):
    pass


def _empty_formats() -> dict[str, list[dict[str, Any]]]:
    return {category: [] for category in CATEGORIES}


def _read_store(settings: Settings) -> dict[str, Any]:
    return read_json(settings.formats_file) or {}


def get_formats(settings: Settings) -> dict[str, list[dict[str, Any]]]:
    stored = _read_store(settings)
    formats = _empty_formats()
    for category in CATEGORIES:
        entries = stored.get(category)
        if isinstance(entries, list):
            formats[category] = [dict(entry) for entry in entries if isinstance(entry, dict)]
    return formats


def get_category_formats(settings: Settings, category: str) -> list[dict[str, Any]]:
    if category not in CATEGORIES:
        raise FormatStoreError(f"Unknown format type: {category}")
    return get_formats(settings)[category]


def _scope_of(entry: dict[str, Any]) -> tuple[str, ...]:
    return tuple(str(entry.get(field) or "") for field in SCOPE_FIELDS)


def _clean_entry(category: str, entry: Any, position: int) -> dict[str, Any]:
    if not isinstance(entry, dict):
        raise FormatStoreError(f"Format #{position + 1} must be a JSON object.")
    name = str(entry.get("name") or "").strip()
    if not name:
        raise FormatStoreError(f"Format #{position + 1} is missing a name.")
    template = entry.get("template")
    if not isinstance(template, str):
        raise FormatStoreError(f"Format '{name}' must have a string template.")

    cleaned = deepcopy(entry)
    cleaned["name"] = name
    if category == CATEGORY_LIBRARIES:
        cleaned["mediaType"] = entry.get("mediaType") or DEFAULT_LIBRARY_MEDIA_TYPE
    return cleaned


def validate_category_formats(category: str, formats: Any) -> list[dict[str, Any]]:
    if category not in CATEGORIES:
        raise FormatStoreError(f"Unknown format type: {category}")
    if not isinstance(formats, list):
        raise FormatStoreError("formats must be a list.")

    cleaned: list[dict[str, Any]] = []
    seen: set[tuple[str, ...]] = set()
    for position, entry in enumerate(formats):
        item = _clean_entry(category, entry, position)
        identity = (item["name"], *_scope_of(item))
        if identity in seen:
            raise FormatStoreError(f"Duplicate format name '{item['name']}' in the same scope.")
        seen.add(identity)
        cleaned.append(item)
    return cleaned


def save_category_formats(
    settings: Settings, category: str, formats: Any
) -> dict[str, list[dict[str, Any]]]:
    cleaned = validate_category_formats(category, formats)
    with _STORE_GUARD:
        stored = _read_store(settings)
        stored.update(get_formats(settings))
        stored[category] = cleaned
        stored["updated_at_utc"] = datetime.now(timezone.utc).isoformat()
        write_json(settings.formats_file, stored)
        saved = get_formats(settings)
    logger.info("Saved %s %s format(s).", len(cleaned), category)
    return saved


def get_sections(settings: Settings) -> dict[str, Any]:
    sections = _read_store(settings).get(SECTIONS_CONFIG_KEY)
    if not isinstance(sections, list):
        sections = []
    return {"total": len(sections), "sections": sections}


def save_sections(settings: Settings, sections: Any) -> dict[str, Any]:
    if not isinstance(sections, list):
        raise FormatStoreError("sections must be a list.")
    cleaned: list[dict[str, Any]] = []
    for position, section in enumerate(sections):
        if not isinstance(section, dict) or section.get("section_id") in (None, ""):
            raise FormatStoreError(f"Section #{position + 1} is missing section_id.")
        cleaned.append(deepcopy(section))

    with _STORE_GUARD:
        stored = _read_store(settings)
        stored[SECTIONS_CONFIG_KEY] = cleaned
        write_json(settings.formats_file, stored)
    logger.info("Saved %s library section(s).", len(cleaned))
    return {"total": len(cleaned), "sections": cleaned}

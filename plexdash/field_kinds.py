from __future__ import annotations

import re
from typing import Mapping

KIND_TIMESTAMP = "timestamp"
KIND_DURATION = "duration"
KIND_INDEX = "index"
KIND_ARRAY = "array"
KIND_COUNT = "count"
KIND_FLAG = "flag"
KIND_STATE = "state"
KIND_PASSTHROUGH = "passthrough"

KINDS_ALL = {
    KIND_TIMESTAMP,
    KIND_DURATION,
    KIND_INDEX,
    KIND_ARRAY,
    KIND_COUNT,
    KIND_FLAG,
    KIND_STATE,
    KIND_PASSTHROUGH,
}

CATEGORY_DOWNLOADS = "downloads"
CATEGORY_RECENTLY_ADDED = "recentlyAdded"
CATEGORY_SECTIONS = "sections"
CATEGORY_LIBRARIES = "libraries"
CATEGORY_USERS = "users"

CATEGORIES = (
    CATEGORY_DOWNLOADS,
    CATEGORY_RECENTLY_ADDED,
    CATEGORY_SECTIONS,
    CATEGORY_LIBRARIES,
    CATEGORY_USERS,
)

TIMESTAMP_FORMATS = ("default", "short", "relative", "full", "time")

# Keys are stored in snake_case; camelCase spellings resolve through kind_for().
FIELD_KINDS: dict[str, str] = {
    "added_at": KIND_TIMESTAMP,
    "updated_at": KIND_TIMESTAMP,
    "last_viewed_at": KIND_TIMESTAMP,
    "originally_available_at": KIND_TIMESTAMP,
    "last_seen": KIND_TIMESTAMP,
    "last_accessed": KIND_TIMESTAMP,
    "duration": KIND_DURATION,
    "media_index": KIND_INDEX,
    "parent_media_index": KIND_INDEX,
    "directors": KIND_ARRAY,
    "writers": KIND_ARRAY,
    "actors": KIND_ARRAY,
    "genres": KIND_ARRAY,
    "labels": KIND_ARRAY,
    "collections": KIND_ARRAY,
    "count": KIND_COUNT,
    "parent_count": KIND_COUNT,
    "child_count": KIND_COUNT,
    "plays": KIND_COUNT,
    "total_plays": KIND_COUNT,
    "is_active": KIND_FLAG,
    "state": KIND_STATE,
}

# Library rows report last_played as a timestamp; user rows use it for a title.
CATEGORY_FIELD_KINDS: dict[str, dict[str, str]] = {
    CATEGORY_LIBRARIES: {"last_played": KIND_TIMESTAMP},
}

# Tried in order after the exact key and before the generic case alias.
KEY_ALIASES: dict[str, tuple[str, ...]] = {
    "added_at": ("addedAt",),
    "updated_at": ("updatedAt",),
    "last_viewed_at": ("lastViewedAt",),
    "originally_available_at": ("originallyAvailableAt",),
    "media_index": ("index",),
    "parent_media_index": ("parentIndex",),
    "media_type": ("mediaType", "type"),
    "section_id": ("librarySectionID", "sectionId"),
    "section_name": ("librarySectionTitle", "library_name"),
    "content_rating": ("contentRating",),
    "grandparent_title": ("grandparentTitle",),
    "parent_title": ("parentTitle",),
}

# (field, format argument it applies to or None for any argument)
PRECOMPUTED_FIELDS: dict[str, tuple[str, str | None]] = {
    "duration": ("formatted_duration", None),
    "last_seen": ("last_seen_formatted", "default"),
}

INDEX_PREFIXES = {
    "parent_media_index": "S",
    "media_index": "E",
}

SHOW_MEDIA_TYPES = {"show", "shows", "episode", "season"}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def _snake_key(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def field_kinds_for(category: str | None = None) -> dict[str, str]:
    table = dict(FIELD_KINDS)
    if category:
        table.update(CATEGORY_FIELD_KINDS.get(category, {}))
    return table


def kind_for(key: str, field_kinds: Mapping[str, str] | None = None) -> str:
    table = FIELD_KINDS if field_kinds is None else field_kinds
    kind = table.get(key)
    if kind is None and any(ch.isupper() for ch in key):
        kind = table.get(_snake_key(key))
    if kind is None:
        for canonical, aliases in KEY_ALIASES.items():
            if key in aliases and canonical in table:
                kind = table[canonical]
                break
    return kind if kind in KINDS_ALL else KIND_PASSTHROUGH

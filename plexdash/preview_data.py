from __future__ import annotations

from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from .field_kinds import (
    CATEGORY_DOWNLOADS,
    CATEGORY_LIBRARIES,
    CATEGORY_RECENTLY_ADDED,
    CATEGORY_SECTIONS,
    CATEGORY_USERS,
)
from .format_template import render

# Offsets in seconds before "now" for timestamp fields of the examples.
_RECENT_OFFSET = 25 * 60

EXAMPLE_DATA: dict[str, dict[str | None, dict[str, Any]]] = {
    CATEGORY_DOWNLOADS: {
        None: {
            "uuid": "abc123",
            "title": "Media download by Username",
            "subtitle": "Matrix",
            "progress": 45,
            "type": "download",
        },
    },
    CATEGORY_RECENTLY_ADDED: {
        "movies": {
            "rating_key": "12345",
            "title": "Inception",
            "year": "2010",
            "mediaType": "movie",
            "addedAt": -_RECENT_OFFSET,
            "summary": "A thief who steals corporate secrets through the use of dream-sharing technology",
            "rating": "8.8",
            "contentRating": "PG-13",
            "duration": 8880,
            "video_full_resolution": "1080p",
        },
        "shows": {
            "rating_key": "67890",
            "grandparent_title": "Breaking Bad",
            "parent_media_index": "5",
            "media_index": "2",
            "title": "Madrigal",
            "year": "2012",
            "mediaType": "show",
            "addedAt": -_RECENT_OFFSET,
            "summary": "Walt meets with Gus Fring's former employer",
            "rating": "9.5",
            "contentRating": "TV-MA",
            "duration": 2820,
            "video_full_resolution": "1080p",
        },
        "music": {
            "rating_key": "54321",
            "title": "Bohemian Rhapsody",
            "grandparent_title": "Queen",
            "parent_title": "A Night at the Opera",
            "year": "1975",
            "mediaType": "music",
            "addedAt": -_RECENT_OFFSET,
            "summary": "Iconic rock ballad by Queen",
            "duration": 355,
        },
    },
    CATEGORY_USERS: {
        "movies": {
            "friendly_name": "JohnDoe",
            "user_id": 12345,
            "email": "john@example.com",
            "plays": 1520,
            "duration": 8160,
            "last_seen": -3600,
            "is_active": True,
            "state": "playing",
            "media_type": "Movie",
            "progress_percent": "45%",
            "title": "The Matrix",
            "original_title": "The Matrix",
            "year": 1999,
            "full_title": "The Matrix (1999)",
        },
        "shows": {
            "friendly_name": "JaneDoe",
            "user_id": 67890,
            "email": "jane@example.com",
            "plays": 842,
            "duration": 2820,
            "last_seen": -7200,
            "is_active": False,
            "state": None,
            "media_type": "Episode",
            "full_title": "Breaking Bad - Madrigal",
            "title": "Madrigal",
            "parent_title": "Season 5",
            "grandparent_title": "Breaking Bad",
            "year": 2012,
            "media_index": 2,
            "parent_media_index": 5,
        },
    },
    CATEGORY_SECTIONS: {
        None: {
            "section_id": "1",
            "section_name": "Movies",
            "section_type": "movie",
            "title": "The Matrix",
            "year": 1999,
            "content_rating": "R",
            "duration": 8160,
            "added_at": -86400,
            "originally_available_at": "1999-03-31",
            "directors": ["Lana Wachowski", "Lilly Wachowski"],
            "genres": ["Action", "Science Fiction"],
            "count": 1250,
        },
    },
    CATEGORY_LIBRARIES: {
        "movies": {
            "section_id": "1",
            "section_name": "Movies",
            "section_type": "movie",
            "count": 1250,
            "parent_count": 1250,
            "child_count": 0,
            "total_plays": 10000,
            "last_accessed": -3600,
            "last_played": -86400,
        },
        "shows": {
            "section_id": "2",
            "section_name": "TV Shows",
            "section_type": "show",
            "count": 250,
            "parent_count": 50,
            "child_count": 1200,
            "total_plays": 5000,
            "last_accessed": -7200,
            "last_played": -172800,
        },
        "music": {
            "section_id": "3",
            "section_name": "Music",
            "section_type": "artist",
            "count": 500,
            "parent_count": 100,
            "child_count": 5000,
            "total_plays": 2500,
            "last_accessed": -14400,
            "last_played": -259200,
        },
    },
}

_RELATIVE_TIMESTAMP_FIELDS = {"addedAt", "added_at", "last_seen", "last_accessed", "last_played"}


def example_record(
    category: str, media_type: str | None = None, *, now: datetime | None = None
) -> dict[str, Any]:
    by_media = EXAMPLE_DATA.get(category)
    if not by_media:
        return {}
    if media_type in by_media:
        template = by_media[media_type]
    else:
        template = next(iter(by_media.values()))

    epoch_now = int((now or datetime.now(timezone.utc)).timestamp())
    record = deepcopy(template)
    for key in _RELATIVE_TIMESTAMP_FIELDS & record.keys():
        offset = record[key]
        if isinstance(offset, int) and offset <= 0:
            record[key] = epoch_now + offset
    return record


ALL_SCOPE = "all"


def _matches(value: Any, wanted: Any) -> bool:
    if value in (None, "", ALL_SCOPE):
        return True
    if wanted in (None, ""):
        return False
    return str(value) == str(wanted)


def select_formats(
    formats: Iterable[Mapping[str, Any]],
    *,
    section_id: Any = None,
    media_type: str | None = None,
) -> list[Mapping[str, Any]]:
    return [
        entry
        for entry in formats
        if _matches(entry.get("sectionId"), section_id) and _matches(entry.get("mediaType"), media_type)
    ]


def apply_formats(
    record: Mapping[str, Any], formats: Iterable[Mapping[str, Any]], **render_kwargs: Any
) -> dict[str, str]:
    rendered: dict[str, str] = {}
    for entry in formats:
        name = str(entry.get("name") or "").strip()
        if name:
            rendered[name] = render(entry.get("template"), record, **render_kwargs)
    return rendered


def format_records(
    records: Iterable[Mapping[str, Any]],
    formats: Iterable[Mapping[str, Any]],
    **render_kwargs: Any,
) -> list[dict[str, Any]]:
    format_list = list(formats)
    output: list[dict[str, Any]] = []
    for record in records:
        item = dict(record)
        item["formatted"] = apply_formats(record, format_list, **render_kwargs)
        output.append(item)
    return output

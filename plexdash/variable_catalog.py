from __future__ import annotations

from typing import Any, Mapping

from .field_kinds import (
    CATEGORY_DOWNLOADS,
    CATEGORY_LIBRARIES,
    CATEGORY_RECENTLY_ADDED,
    CATEGORY_SECTIONS,
    CATEGORY_USERS,
    KIND_TIMESTAMP,
    field_kinds_for,
    kind_for,
)

MEDIA_TYPES = ("movies", "shows", "music")

DATE_HINT = " (formats: default, short, relative, full, time)"

_RECENT_COMMON = [
    ("rating_key", "Unique identifier for the media"),
    ("year", "Year of release"),
    ("mediaType", "Type of media"),
    ("addedAt", "Timestamp when media was added" + DATE_HINT),
    ("summary", "Brief summary of the media"),
    ("duration", "Runtime"),
]

_USER_COMMON = [
    ("friendly_name", "User's display name"),
    ("email", "User's email address"),
    ("user_id", "Unique user identifier"),
    ("plays", "Total number of plays"),
    ("duration", "Total watch time (raw value in seconds)"),
    ("formatted_duration", "Formatted total watch time (e.g., '2h 21m')"),
    ("last_seen", "Last activity timestamp" + DATE_HINT),
    ("last_seen_formatted", "Pre-formatted last seen time (e.g., '2 hrs ago')"),
    ("is_active", "User's active status (Active/Inactive)"),
    ("is_watching", "Watching status ('Watching'/'Watched')"),
    ("state", "Current watching state (watching/watched)"),
    ("media_type", "Type of media (Movie/Episode)"),
    ("progress_percent", "Current viewing progress percentage"),
    ("progress_time", "Current viewing progress time"),
    ("last_played", "Title of last played content"),
    ("last_played_modified", "Last played title with show and episode"),
]

_SECTION_FIELDS = [
    ("section_id", "Unique identifier for the section"),
    ("section_name", "Name of the library section"),
    ("section_type", "Type of media (movie, show, artist)"),
    ("library_name", "Library display name"),
    ("title", "Media title"),
    ("original_title", "Original title if different"),
    ("full_title", "Complete title with additional info"),
    ("sort_title", "Title used for sorting"),
    ("tagline", "Media tagline or short description"),
    ("summary", "Full plot summary or description"),
    ("media_type", "Type of media content"),
    ("content_rating", "Content rating (e.g., PG-13, R)"),
    ("rating", "Critics rating score"),
    ("audience_rating", "Audience rating score"),
    ("user_rating", "User-provided rating"),
    ("duration", "Content duration"),
    ("year", "Release year"),
    ("studio", "Production studio"),
    ("rating_key", "Unique rating identifier"),
    ("parent_rating_key", "Parent content rating key"),
    ("grandparent_rating_key", "Grandparent content rating key"),
    ("parent_title", "Title of parent content"),
    ("grandparent_title", "Title of grandparent content"),
    ("media_index", "Position in series/season"),
    ("parent_media_index", "Parent position index"),
    ("added_at", "When item was added" + DATE_HINT),
    ("updated_at", "Last update time" + DATE_HINT),
    ("last_viewed_at", "Last viewed time" + DATE_HINT),
    ("originally_available_at", "Original release date" + DATE_HINT),
    ("thumb", "Thumbnail image path"),
    ("art", "Artwork image path"),
    ("directors", "List of directors"),
    ("writers", "List of writers"),
    ("actors", "List of actors"),
    ("genres", "List of genres"),
    ("labels", "Applied labels"),
    ("collections", "Collections the item belongs to"),
    ("count", "Number of items in the section"),
    ("parent_count", "Number of parent items"),
    ("child_count", "Number of child items"),
]

# category -> media type (None when the category is not split by media type) -> entries
VARIABLES: dict[str, dict[str | None, list[tuple[str, str]]]] = {
    CATEGORY_DOWNLOADS: {
        None: [
            ("title", "Title of the media"),
            ("subtitle", "Movie or episode title"),
            ("progress", "Download progress percentage"),
            ("type", "Activity type"),
            ("uuid", "Unique identifier"),
        ],
    },
    CATEGORY_RECENTLY_ADDED: {
        "movies": [
            ("title", "Movie title"),
            ("video_full_resolution", "Video quality"),
            ("rating", "Media rating"),
            ("contentRating", "Content rating (PG, R, etc.)"),
            *_RECENT_COMMON,
        ],
        "shows": [
            ("grandparent_title", "Show name"),
            ("parent_media_index", "Season number"),
            ("media_index", "Episode number"),
            ("title", "Episode title"),
            ("video_full_resolution", "Video quality"),
            ("rating", "Media rating"),
            ("contentRating", "Content rating (PG, R, etc.)"),
            *_RECENT_COMMON,
        ],
        "music": [
            ("title", "Track title"),
            ("grandparent_title", "Artist name"),
            ("parent_title", "Album name"),
            *_RECENT_COMMON,
        ],
    },
    CATEGORY_USERS: {
        "movies": [
            *_USER_COMMON,
            ("title", "Movie title"),
            ("original_title", "Original movie title if different"),
            ("year", "Release year"),
            ("full_title", "Complete title including year or additional info"),
        ],
        "shows": [
            *_USER_COMMON,
            ("full_title", "Complete episode title"),
            ("title", "Episode title"),
            ("parent_title", "Season title"),
            ("grandparent_title", "Show title"),
            ("original_title", "Original episode title if different"),
            ("year", "Release year"),
            ("media_index", "Episode number"),
            ("parent_media_index", "Season number"),
        ],
    },
    CATEGORY_SECTIONS: {None: _SECTION_FIELDS},
    CATEGORY_LIBRARIES: {
        None: [
            ("section_id", "Unique library identifier"),
            ("section_name", "Name of the library"),
            ("section_type", "Type of library (movie, show, artist)"),
            ("count", "Total number of primary items"),
            ("parent_count", "Number of parent items (e.g., shows, albums)"),
            ("child_count", "Total number of child items (e.g., episodes, tracks)"),
            ("total_plays", "Total number of plays for this library"),
            ("last_accessed", "Timestamp of last access" + DATE_HINT),
            ("last_played", "Timestamp of last play" + DATE_HINT),
        ],
    },
}


def _entries(category: str, media_type: str | None) -> list[tuple[str, str]]:
    by_media = VARIABLES.get(category)
    if not by_media:
        return []
    if None in by_media:
        return by_media[None]
    if media_type in by_media:
        return by_media[media_type]
    # Unscoped requests get the union across media types, first description wins.
    merged: dict[str, str] = {}
    for entries in by_media.values():
        for name, description in entries:
            merged.setdefault(name, description)
    return list(merged.items())


def list_variables(category: str, media_type: str | None = None) -> list[dict[str, Any]]:
    field_kinds = field_kinds_for(category)
    return [
        {
            "name": name,
            "description": description,
            "is_date": kind_for(name, field_kinds) == KIND_TIMESTAMP,
        }
        for name, description in _entries(category, media_type)
    ]


def variable_names(category: str, media_type: str | None = None) -> set[str]:
    return {name for name, _ in _entries(category, media_type)}


def token_for(name: str, field_kinds: Mapping[str, str] | None = None) -> str:
    if kind_for(name, field_kinds) == KIND_TIMESTAMP:
        return f"{{{name}:relative}}"
    return f"{{{name}}}"


def insert_token(
    template: str,
    cursor: int | None,
    name: str,
    *,
    field_kinds: Mapping[str, str] | None = None,
) -> tuple[str, int]:
    """Insert the picker token for ``name`` at ``cursor``; returns the new text and cursor."""
    text = template or ""
    position = len(text) if cursor is None else max(0, min(cursor, len(text)))
    token = token_for(name, field_kinds)
    return text[:position] + token + text[position:], position + len(token)

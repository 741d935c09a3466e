from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import requests

from .config import Settings
from .numeric_utils import as_float, as_int
from .value_formatters import format_duration, format_timestamp


logger = logging.getLogger(__name__)

API_PATH = "/api/v2"
LOCAL_USER_NAME = "Local"

# Tautulli media and section types to the media-type scope stored on formats.
MEDIA_SCOPES = {
    "movie": "movies",
    "show": "shows",
    "episode": "shows",
    "artist": "music",
    "track": "music",
}


# Media-type scope to the Tautulli section type it lists recently added items from.
RECENT_SECTION_TYPES = {
    "movies": "movie",
    "shows": "show",
    "music": "artist",
}


class TautulliError(RuntimeError):
    pass


class TautulliClient:
    def __init__(self, settings: Settings):
        if not settings.tautulli_configured:
            raise TautulliError("Tautulli URL and API key are not configured.")
        self.base_url = str(settings.tautulli_url).rstrip("/")
        self.api_key = settings.tautulli_api_key
        self.timeout = settings.request_timeout_seconds
        self.session = requests.Session()

    def _request(self, cmd: str, **params: Any) -> Any:
        response = self.session.get(
            f"{self.base_url}{API_PATH}",
            params={"apikey": self.api_key, "cmd": cmd, **params},
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json().get("response") or {}
        if payload.get("result") != "success":
            message = payload.get("message") or "unknown error"
            raise TautulliError(f"Tautulli {cmd} failed: {message}")
        return payload.get("data")

    def get_activity(self) -> list[dict[str, Any]]:
        data = self._request("get_activity") or {}
        sessions = data.get("sessions") if isinstance(data, dict) else None
        return sessions if isinstance(sessions, list) else []

    def get_users_table(self, length: int = 1000) -> list[dict[str, Any]]:
        data = self._request("get_users_table", length=length) or {}
        rows = data.get("data") if isinstance(data, dict) else None
        return rows if isinstance(rows, list) else []

    def get_libraries_table(self) -> list[dict[str, Any]]:
        data = self._request("get_libraries_table") or {}
        rows = data.get("data") if isinstance(data, dict) else None
        return rows if isinstance(rows, list) else []

    def get_recently_added(self, section_id: Any, count: int = 15) -> list[dict[str, Any]]:
        data = self._request("get_recently_added", section_id=section_id, count=count) or {}
        rows = data.get("recently_added") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            logger.warning("Tautulli returned no recently added rows for section %s.", section_id)
            return []
        return rows


def _show_title(session: dict[str, Any]) -> str:
    title = session.get("title") or ""
    show = session.get("grandparent_title")
    if not show:
        return title
    season = as_int(session.get("parent_media_index"))
    episode = as_int(session.get("media_index"))
    if season is not None and episode is not None:
        return f"{show} - S{season:02d}E{episode:02d} - {title}"
    return f"{show} - {title}"


def _progress_time(view_offset_ms: Any, duration_ms: Any) -> str:
    def _clock(ms: Any) -> str:
        total_minutes = int((as_float(ms) or 0) // 60000)
        hours, minutes = divmod(total_minutes, 60)
        return f"{hours:02d}:{minutes:02d}"

    return f"{_clock(view_offset_ms)} / {_clock(duration_ms)}"


def build_user_records(
    users: list[dict[str, Any]],
    sessions: list[dict[str, Any]],
    *,
    now: datetime | None = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Flatten Tautulli users into template records, active watchers first."""
    current = now or datetime.now(timezone.utc)
    epoch_now = int(current.timestamp())

    watching: dict[str, dict[str, Any]] = {}
    for session in sessions:
        if session.get("state") == "playing":
            watching[str(session.get("user_id"))] = session

    def _last_seen(user: dict[str, Any]) -> int:
        if str(user.get("user_id")) in watching:
            return epoch_now
        return as_int(user.get("last_seen")) or 0

    candidates = [user for user in users if user.get("friendly_name") != LOCAL_USER_NAME]
    candidates.sort(key=lambda user: (str(user.get("user_id")) not in watching, -_last_seen(user)))

    records: list[dict[str, Any]] = []
    for user in candidates[: max(1, limit)]:
        session = watching.get(str(user.get("user_id")))
        last_seen = _last_seen(user)
        record: dict[str, Any] = {
            "friendly_name": user.get("friendly_name") or "",
            "user_id": user.get("user_id"),
            "email": user.get("email") or "",
            "plays": as_int(user.get("plays")) or 0,
            "last_seen": last_seen or None,
            "last_seen_formatted": format_timestamp(last_seen, "relative", now=current) if last_seen else "Never",
            "is_active": session is not None,
            "is_watching": "Watching" if session else "Watched",
            "state": "watching" if session else "watched",
            "last_played": user.get("last_played") or "",
            "raw_data": dict(user),
        }
        if session is not None:
            duration_ms = as_float(session.get("duration")) or 0
            record.update(
                {
                    "duration": int(duration_ms // 1000),
                    "formatted_duration": format_duration(duration_ms),
                    "media_type": str(session.get("media_type") or "").capitalize(),
                    "mediaType": MEDIA_SCOPES.get(str(session.get("media_type") or "").lower()),
                    "progress_percent": f"{session.get('progress_percent') or 0}%",
                    "progress_time": _progress_time(session.get("view_offset"), duration_ms),
                    "last_played": session.get("full_title") or session.get("title") or "",
                    "last_played_modified": _show_title(session),
                    "title": session.get("title") or "",
                    "full_title": session.get("full_title") or "",
                    "parent_title": session.get("parent_title") or "",
                    "grandparent_title": session.get("grandparent_title") or "",
                    "original_title": session.get("original_title") or "",
                    "year": session.get("year") or "",
                    "media_index": session.get("media_index"),
                    "parent_media_index": session.get("parent_media_index"),
                    "rating_key": session.get("rating_key"),
                }
            )
        records.append(record)
    return records


def build_library_records(libraries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for library in libraries:
        section_type = str(library.get("section_type") or "")
        records.append(
            {
                "section_id": library.get("section_id"),
                "section_name": library.get("section_name") or "",
                "section_type": section_type,
                "mediaType": MEDIA_SCOPES.get(section_type.lower(), section_type),
                "count": as_int(library.get("count")) or 0,
                "parent_count": as_int(library.get("parent_count")) or 0,
                "child_count": as_int(library.get("child_count")) or 0,
                "total_plays": as_int(library.get("plays")) or 0,
                "last_accessed": library.get("last_accessed"),
                "last_played": library.get("last_played"),
                "raw_data": dict(library),
            }
        )
    return records


def _section_type(section: dict[str, Any]) -> str:
    return str(section.get("section_type") or section.get("type") or "").lower()


def matching_sections(
    sections: list[dict[str, Any]], media_type: str, section_id: Any = None
) -> list[dict[str, Any]]:
    wanted = RECENT_SECTION_TYPES.get(media_type)
    matches: list[dict[str, Any]] = []
    for section in sections:
        if not isinstance(section, dict) or _section_type(section) != wanted:
            continue
        if section_id not in (None, "") and str(section.get("section_id")) != str(section_id):
            continue
        matches.append(section)
    return matches


def build_recent_records(
    section: dict[str, Any], rows: list[dict[str, Any]], media_type: str
) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        record = dict(row)
        record.update(
            {
                "section_id": section.get("section_id"),
                "section_name": section.get("section_name") or section.get("name") or "",
                "mediaType": media_type,
                "raw_data": dict(row),
            }
        )
        records.append(record)
    return records


def newest_first(records: list[dict[str, Any]], limit: int) -> list[dict[str, Any]]:
    ordered = sorted(records, key=lambda record: as_int(record.get("added_at")) or 0, reverse=True)
    return ordered[: max(1, limit)]

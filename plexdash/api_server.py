from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests
from flask import Flask, request

from .config import Settings
from .field_kinds import CATEGORIES, CATEGORY_LIBRARIES, CATEGORY_RECENTLY_ADDED, CATEGORY_USERS
from .format_store import (
    FormatStoreError,
    get_category_formats,
    get_formats,
    get_sections,
    save_category_formats,
    save_sections,
)
from .format_template import render_details, validate_template
from .preview_data import example_record, format_records, select_formats
from .tautulli_client import (
    RECENT_SECTION_TYPES,
    TautulliClient,
    TautulliError,
    build_library_records,
    build_recent_records,
    build_user_records,
    matching_sections,
    newest_first,
)
from .variable_catalog import list_variables


logger = logging.getLogger(__name__)

app = Flask(__name__)
settings = Settings.from_env()
settings.ensure_state_paths()


def _display_tz() -> ZoneInfo:
    try:
        return ZoneInfo(settings.display_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone '%s'. Falling back to UTC.", settings.display_timezone)
        return ZoneInfo("UTC")


def _error(message: str, status_code: int) -> tuple[dict, int]:
    return {"status": "error", "error": message}, status_code


def _tautulli_client() -> TautulliClient | None:
    if not settings.tautulli_configured:
        return None
    return TautulliClient(settings)


def _log_render_errors(context: str, errors: list[dict[str, str]]) -> None:
    for error in errors:
        logger.warning("Template token %s failed in %s: %s", error.get("token"), context, error.get("error"))


@app.get("/health")
def health() -> tuple[dict, int]:
    return (
        {
            "status": "ok",
            "time_utc": datetime.now(timezone.utc).isoformat(),
            "formats_file_exists": settings.formats_file.exists(),
            "tautulli_configured": settings.tautulli_configured,
        },
        200,
    )


@app.get("/api/formats")
def formats_get() -> tuple[dict, int]:
    return get_formats(settings), 200


@app.post("/api/formats")
def formats_post() -> tuple[dict, int]:
    body = request.get_json(silent=True) or {}
    category = body.get("type")
    formats = body.get("formats")
    if not category or not isinstance(formats, list):
        return _error("Invalid format data", 400)

    try:
        saved = save_category_formats(settings, category, formats)
    except FormatStoreError as exc:
        return _error(str(exc), 400)
    except OSError as exc:
        logger.error("Failed to save %s formats: %s", category, exc)
        return _error(f"Failed to save formats: {exc}", 500)
    return {"success": True, "formats": saved}, 200


@app.get("/api/sections")
def sections_get() -> tuple[dict, int]:
    return get_sections(settings), 200


@app.post("/api/sections")
def sections_post() -> tuple[dict, int]:
    body = request.get_json(silent=True) or {}
    try:
        saved = save_sections(settings, body.get("sections"))
    except FormatStoreError as exc:
        return _error(str(exc), 400)
    except OSError as exc:
        logger.error("Failed to save sections: %s", exc)
        return _error(f"Failed to save sections: {exc}", 500)
    return {"success": True, **saved}, 200


@app.get("/api/variables/<category>")
def variables_get(category: str) -> tuple[dict, int]:
    if category not in CATEGORIES:
        return _error(f"Unknown format type: {category}", 404)
    media_type = request.args.get("mediaType") or None
    return {
        "status": "ok",
        "category": category,
        "media_type": media_type,
        "variables": list_variables(category, media_type),
    }, 200


@app.post("/api/preview")
def preview_post() -> tuple[dict, int]:
    body = request.get_json(silent=True) or {}
    template = body.get("template")
    category = body.get("category") or None
    media_type = body.get("mediaType") or None
    if category is not None and category not in CATEGORIES:
        return _error(f"Unknown format type: {category}", 400)

    data = body.get("data")
    context_source = "request"
    if not isinstance(data, dict):
        data = example_record(category, media_type) if category else {}
        context_source = "example"

    result = render_details(template, data, category=category, tz=_display_tz())
    _log_render_errors("preview", result["errors"])
    return {
        "status": "ok",
        "context_source": context_source,
        "preview": result["text"],
        "errors": result["errors"],
        "validation": validate_template(template, category=category),
    }, 200


def _live_records(category: str, fetch) -> tuple[dict, int]:
    try:
        client = _tautulli_client()
        if client is None:
            return _error("Tautulli is not configured.", 503)
        records = fetch(client)
    except (requests.RequestException, TautulliError) as exc:
        logger.error("Tautulli request for %s failed: %s", category, exc)
        return _error(f"Failed to fetch {category} from Tautulli: {exc}", 502)

    formats = get_category_formats(settings, category)
    tz = _display_tz()
    output: list[dict[str, Any]] = []
    for record in records:
        scoped = select_formats(
            formats,
            section_id=record.get("section_id"),
            media_type=record.get("mediaType"),
        )
        output.extend(format_records([record], scoped, category=category, tz=tz))
    return {"status": "ok", "total": len(output), category: output}, 200


def _count_arg(default: int = 50) -> int | None:
    try:
        return max(1, int(request.args.get("count", default)))
    except (TypeError, ValueError):
        return None


@app.get("/api/users")
def users_get() -> tuple[dict, int]:
    count = _count_arg()
    if count is None:
        return _error("count must be an integer.", 400)

    def _fetch(client: TautulliClient) -> list[dict[str, Any]]:
        return build_user_records(client.get_users_table(), client.get_activity(), limit=count)

    return _live_records(CATEGORY_USERS, _fetch)


@app.get("/api/libraries")
def libraries_get() -> tuple[dict, int]:
    def _fetch(client: TautulliClient) -> list[dict[str, Any]]:
        return build_library_records(client.get_libraries_table())

    return _live_records(CATEGORY_LIBRARIES, _fetch)


@app.get("/api/recent/<media_type>")
def recent_get(media_type: str) -> tuple[dict, int]:
    if media_type not in RECENT_SECTION_TYPES:
        return _error(f"Unknown media type: {media_type}", 400)
    count = _count_arg()
    if count is None:
        return _error("count must be an integer.", 400)
    section_id = request.args.get("section") or None
    saved_sections = get_sections(settings)["sections"]

    def _fetch(client: TautulliClient) -> list[dict[str, Any]]:
        sections = saved_sections or client.get_libraries_table()
        records: list[dict[str, Any]] = []
        for section in matching_sections(sections, media_type, section_id):
            rows = client.get_recently_added(section.get("section_id"), count=count)
            records.extend(build_recent_records(section, rows, media_type))
        return newest_first(records, count)

    return _live_records(CATEGORY_RECENTLY_ADDED, _fetch)


def main() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    logger.info("Format API listening on port %s (formats file: %s)", settings.api_port, settings.formats_file)
    app.run(host="0.0.0.0", port=settings.api_port)


if __name__ == "__main__":
    main()

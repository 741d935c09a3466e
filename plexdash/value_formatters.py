from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Mapping

from dateutil import parser as date_parser

from .numeric_utils import as_float, as_int, grouped_number, plain_number

NEVER = "Never"
INVALID_DATE = "Invalid Date"
ZERO_DURATION = "0m"

SECONDS_CEILING = 4294967296
DURATION_SECONDS_CEILING = 10000

_FORMATTED_DURATION = re.compile(r"\d+h( \d+m)?|\d+m")

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

FALSE_FLAG_STRINGS = {"", "0", "false", "no", "off"}

_YEAR_PROBES = (datetime(2000, 1, 1), datetime(2001, 1, 1))


def _from_epoch(number: float) -> datetime | None:
    seconds = number if number < SECONDS_CEILING else number / 1000.0
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _parse_date_text(text: str) -> datetime | None:
    # dateutil fills missing parts from the default; text without a year is invalid.
    try:
        first, second = (date_parser.parse(text, default=default) for default in _YEAR_PROBES)
    except (ValueError, OverflowError):
        return None
    if first.year != second.year:
        return None
    return first


def parse_timestamp(value: Any) -> datetime | None:
    """Return an aware datetime, or None when the value cannot be read as one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed: datetime | None = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        number = as_float(value)
        if number is None:
            return None
        parsed = _from_epoch(number)
    elif isinstance(value, str):
        text = value.strip()
        if "-" in text:
            parsed = _parse_date_text(text)
        else:
            number = as_float(text)
            parsed = _from_epoch(number) if number is not None else _parse_date_text(text)
    else:
        return None

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _is_absent_timestamp(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        text = value.strip()
        return not text or as_float(text) == 0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    return False


def _plural(amount: int, unit: str) -> str:
    if amount == 1:
        return f"1 {unit} ago"
    return f"{amount} {unit}s ago"


def relative_time(moment: datetime, now: datetime) -> str | None:
    """Describe a past moment in graduated units; None for moments in the future."""
    elapsed = math.floor((now - moment).total_seconds())
    if elapsed < 0:
        return None
    if elapsed < 60:
        return _plural(elapsed, "second")
    minutes = elapsed // 60
    if minutes < 60:
        return _plural(minutes, "minute")
    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour")
    days = hours // 24
    if days < 30:
        return _plural(days, "day")
    months = days // 30
    if months < 12:
        return _plural(months, "month")
    return _plural(max(1, days // 365), "year")


def _medium_date(moment: datetime) -> str:
    return f"{MONTH_NAMES[moment.month - 1]} {moment.day}, {moment.year}"


def _clock_time(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{hour:02d}:{moment.minute:02d} {meridiem}"


def format_timestamp(
    value: Any,
    fmt: str = "default",
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> str:
    if _is_absent_timestamp(value):
        return NEVER
    parsed = parse_timestamp(value)
    if parsed is None:
        return INVALID_DATE

    local = parsed.astimezone(tz or timezone.utc)
    if fmt == "short":
        return f"{MONTH_NAMES[local.month - 1][:3]} {local.day}"
    if fmt == "relative":
        current = now or datetime.now(timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        described = relative_time(parsed, current)
        # Future timestamps fall back to the absolute date.
        return described if described is not None else _medium_date(local)
    if fmt == "full":
        return f"{WEEKDAY_NAMES[local.weekday()]}, {_medium_date(local)}"
    if fmt == "time":
        return _clock_time(local)
    return _medium_date(local)


def format_duration(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ZERO_DURATION
    if isinstance(value, str):
        text = value.strip()
        if _FORMATTED_DURATION.fullmatch(text):
            return text
        number = as_float(text) if text else None
    else:
        number = as_float(value)

    if number is None or number <= 0:
        return ZERO_DURATION

    millis = number * 1000 if number < DURATION_SECONDS_CEILING else number
    total_minutes = int(millis // 60000)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0 and minutes > 0:
        return f"{hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h"
    return f"{minutes}m"


def format_index(value: Any, prefix: str = "") -> str:
    if value is None or value is False or (isinstance(value, str) and not value.strip()):
        value = 0
    number = as_int(value)
    text = str(number) if number is not None else str(value).strip()
    return f"{prefix}{text.rjust(2, '0')}"


def format_array(value: Any) -> str:
    if not isinstance(value, (list, tuple)):
        return ""
    parts: list[str] = []
    for item in value:
        if isinstance(item, Mapping):
            item = item.get("tag") or item.get("name")
        text = format_passthrough(item)
        if text:
            parts.append(text)
    return ", ".join(parts)


def format_count(value: Any) -> str:
    if value is None or value is False or value == "":
        value = 0
    number = as_float(value)
    if number is None:
        return str(value)
    return grouped_number(number)


def format_flag(value: Any) -> str:
    if isinstance(value, str):
        active = value.strip().lower() not in FALSE_FLAG_STRINGS
    else:
        active = bool(value)
    return "Active" if active else "Inactive"


def format_state(value: Any) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return "watched"
    if value == "playing":
        return "watching"
    return format_passthrough(value)


def format_passthrough(value: Any) -> str:
    if value is None or isinstance(value, Mapping):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return ""
        return plain_number(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(text for text in (format_passthrough(item) for item in value) if text)
    return str(value)

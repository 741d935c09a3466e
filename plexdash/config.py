from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv


load_dotenv()


EnvGetter = Callable[[str], str | None]


def _str_env(*names: str, default: str = "", getenv: EnvGetter = os.getenv) -> str:
    for name in names:
        value = getenv(name)
        if value is not None:
            return value.strip()
    return default


def _optional_str_env(*names: str, getenv: EnvGetter = os.getenv) -> str | None:
    value = _str_env(*names, default="", getenv=getenv)
    return value or None


def _int_env(
    name: str,
    default: int,
    minimum: int | None = None,
    maximum: int | None = None,
    *,
    getenv: EnvGetter = os.getenv,
) -> int:
    value = getenv(name)
    if value is None:
        parsed = default
    else:
        try:
            parsed = int(value.strip())
        except ValueError:
            parsed = default

    if minimum is not None and parsed < minimum:
        parsed = minimum
    if maximum is not None and parsed > maximum:
        parsed = maximum
    return parsed


@dataclass(frozen=True)
class Settings:
    tautulli_url: str | None
    tautulli_api_key: str | None

    request_timeout_seconds: int
    log_level: str
    api_port: int
    display_timezone: str

    state_dir: Path
    formats_file: Path

    @classmethod
    def from_env(cls) -> "Settings":
        state_dir = Path(os.getenv("STATE_DIR", "state")).resolve()
        formats_file = state_dir / os.getenv("FORMATS_FILE", "formats.json")

        tautulli_url = _optional_str_env("TAUTULLI_URL")
        if tautulli_url:
            tautulli_url = tautulli_url.rstrip("/")

        return cls(
            tautulli_url=tautulli_url,
            tautulli_api_key=_optional_str_env("TAUTULLI_API_KEY"),
            request_timeout_seconds=_int_env("REQUEST_TIMEOUT_SECONDS", 10, minimum=1, maximum=120),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            api_port=_int_env("API_PORT", 3006, minimum=1, maximum=65535),
            display_timezone=_str_env("DISPLAY_TIMEZONE", "TZ", default="UTC"),
            state_dir=state_dir,
            formats_file=formats_file,
        )

    @property
    def tautulli_configured(self) -> bool:
        return bool(self.tautulli_url and self.tautulli_api_key)

    def ensure_state_paths(self) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)

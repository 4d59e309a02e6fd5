# src/sub_api/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time: a missing API key only disables generation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "SUBAPI"

PROVIDERS = ("gemini", "openai", "offline")

DEFAULT_BASE_URLS = {
    "gemini": "https://generativelanguage.googleapis.com/v1beta",
    "openai": "https://api.openai.com/v1",
    "offline": "",
}


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Real environment variables win over .env values.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Global switch ----
    enabled: bool

    # ---- Generation service ----
    provider: str
    api_key: str | None
    base_url: str
    model_name: str
    extra_headers: dict[str, str]
    connect_timeout: float
    read_timeout: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_path: Path
    results_path: Path
    transcript_path: Path

    # ---- Display ----
    render_limit: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "sub-api") or "sub-api"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        enabled = _env_bool(_k("ENABLED"), True)

        provider = _env(_k("PROVIDER"), "gemini").strip().lower()
        if provider not in PROVIDERS:
            provider = "gemini"

        api_key = _first_env(_k("API_KEY"), "GEMINI_API_KEY", "OPENAI_API_KEY", default=None)
        base_url = _env(_k("BASE_URL"), "").strip() or DEFAULT_BASE_URLS[provider]
        model_name = _env(_k("MODEL"), "gemini-2.0-flash").strip() or "gemini-2.0-flash"

        extra_headers: dict[str, str] = {}
        referer = _env(_k("HTTP_REFERER"), "").strip()
        if referer:
            extra_headers["HTTP-Referer"] = referer
            extra_headers["X-Title"] = app_name

        connect_timeout = _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0)
        # keep read >= connect as a sane baseline
        read_timeout = max(_env_float(_k("READ_TIMEOUT_SECONDS"), 60.0), connect_timeout)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/sub_api"))
        tasks_path = _env_path(_k("TASKS_PATH"), data_dir / "tasks.json")
        results_path = _env_path(_k("RESULTS_PATH"), data_dir / "results.json")
        transcript_path = _env_path(_k("TRANSCRIPT_PATH"), data_dir / "transcript.json")

        render_limit = max(1, _env_int(_k("RENDER_LIMIT"), 7))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            enabled=enabled,
            provider=provider,
            api_key=api_key,
            base_url=base_url,
            model_name=model_name,
            extra_headers=extra_headers,
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            data_dir=data_dir,
            tasks_path=tasks_path,
            results_path=results_path,
            transcript_path=transcript_path,
            render_limit=render_limit,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS

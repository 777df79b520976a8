# src/todo_sync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time (the backend is only contacted at startup).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TODO"

MIB = 1024 * 1024


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
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


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
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
    data_dir: Path

    # ---- Supabase project ----
    supabase_url: str
    supabase_key: str

    # ---- Console sign-in (optional) ----
    user_email: str
    user_password: str

    # ---- Remote resources ----
    task_table: str
    db_schema: str
    attachment_bucket: str
    realtime_channel: str

    # ---- Attachments ----
    signed_url_ttl_seconds: int
    max_attachment_bytes: int
    upload_cache_control: str

    @staticmethod
    def from_env() -> "Settings":
        _load_dotenv_if_available()

        app_name = _env(_k("APP_NAME"), "todo-sync")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo_sync"))

        # Accept the names the Supabase dashboard hands out as a fallback.
        supabase_url = (_first_env(_k("SUPABASE_URL"), "SUPABASE_URL", default="") or "").strip()
        supabase_key = (
            _first_env(_k("SUPABASE_KEY"), "SUPABASE_ANON_KEY", "SUPABASE_KEY", default="") or ""
        ).strip()

        user_email = _env(_k("USER_EMAIL"), "").strip()
        user_password = _env(_k("USER_PASSWORD"), "")

        task_table = _env(_k("TASK_TABLE"), "Todo")
        db_schema = _env(_k("DB_SCHEMA"), "public")
        attachment_bucket = _env(_k("ATTACHMENT_BUCKET"), "todo-images")
        realtime_channel = _env(_k("REALTIME_CHANNEL"), "todos-changes")

        signed_url_ttl_seconds = max(1, _env_int(_k("SIGNED_URL_TTL_SECONDS"), 60 * 60))
        max_attachment_bytes = max(1, _env_int(_k("MAX_ATTACHMENT_BYTES"), 5 * MIB))
        upload_cache_control = _env(_k("UPLOAD_CACHE_CONTROL"), "3600")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            supabase_url=supabase_url,
            supabase_key=supabase_key,
            user_email=user_email,
            user_password=user_password,
            task_table=task_table,
            db_schema=db_schema,
            attachment_bucket=attachment_bucket,
            realtime_channel=realtime_channel,
            signed_url_ttl_seconds=signed_url_ttl_seconds,
            max_attachment_bytes=max_attachment_bytes,
            upload_cache_control=upload_cache_control,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS

# src/taskforge/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object per process (normal "settings layer").
- Nothing required at import time; every field has a default.
- Callers (and tests) can always pass their own Settings-like object instead.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKFORGE"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_path(name: str, default: Path | None) -> Path | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_dir: Path | None

    # ---- Runs ----
    default_task: str
    force: bool
    verbose: bool
    defer_completion: bool

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            app_name=_env(_k("APP_NAME"), "taskforge") or "taskforge",
            log_level=_env(_k("LOG_LEVEL"), "INFO").strip().upper() or "INFO",
            log_dir=_env_path(_k("LOG_DIR"), None),
            default_task=_env(_k("DEFAULT_TASK"), "default").strip() or "default",
            force=_env_bool(_k("FORCE"), False),
            verbose=_env_bool(_k("VERBOSE"), False),
            defer_completion=_env_bool(_k("DEFER_COMPLETION"), True),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Real environment wins over .env.
    load_dotenv(override=False)
    return Settings.from_env()

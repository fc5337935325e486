from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/todos.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - CHANGE_EVENTS_STRICT: 'false' (default) to log a change event that cannot be
      recorded and keep the todo result, 'true' to also fail the request
    - LOG_LEVEL: minimum log level (default: INFO)
    - LOG_FORMAT: 'json' (default) or 'console'
    """

    persistence_backend: str = "memory"
    sqlite_db_path: str = "./data/todos.db"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    change_events_strict: bool = False
    log_level: str = "INFO"
    log_format: str = "json"


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        backend = "memory"

    log_format = _get_env("LOG_FORMAT", "json").strip().lower()
    if log_format not in {"json", "console"}:
        log_format = "json"

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/todos.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        change_events_strict=_parse_bool(_get_env("CHANGE_EVENTS_STRICT", "false"), False),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        log_format=log_format,
    )

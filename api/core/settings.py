"""
Process configuration, read from environment variables once at startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_PORT = 8080
DEFAULT_STATIC_DIR = Path(__file__).resolve().parent / "static"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
LOG_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def parse_log_level(raw: str | None) -> str:
    """
    Map a level name onto one both `logging` and uvicorn accept; unknown -> INFO.
    """
    level = (raw or "").strip().upper()
    level = LOG_LEVEL_ALIASES.get(level, level)
    return level if level in LOG_LEVELS else "INFO"


def parse_origins(raw: str | None) -> list[str]:
    """
    Split a comma-separated allow-list, dropping blanks.
    """
    return [s.strip() for s in (raw or "").split(",") if s.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str | None = None
    cors_origins: list[str] = field(default_factory=list)
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    port_max_attempts: int = 100
    trust_proxy: bool = True
    rate_limit_max: int = 60
    rate_limit_window_seconds: int = 60
    static_dir: Path = DEFAULT_STATIC_DIR
    db_pool_min: int = 1
    db_pool_max: int = 10
    db_command_timeout: int = 30
    log_level: str = "INFO"


def load_settings() -> Settings:
    static_dir = os.environ.get("STATIC_DIR", "").strip()
    return Settings(
        database_url=os.environ.get("DATABASE_URL", "").strip() or None,
        cors_origins=parse_origins(os.environ.get("CORS_ORIGIN")),
        host=os.environ.get("HOST", "").strip() or "0.0.0.0",
        port=_env_int("PORT", DEFAULT_PORT),
        port_max_attempts=max(1, _env_int("PORT_MAX_ATTEMPTS", 100)),
        trust_proxy=_env_bool("TRUST_PROXY", True),
        rate_limit_max=max(1, _env_int("RATE_LIMIT_MAX", 60)),
        rate_limit_window_seconds=max(1, _env_int("RATE_LIMIT_WINDOW_SECONDS", 60)),
        static_dir=Path(static_dir) if static_dir else DEFAULT_STATIC_DIR,
        db_pool_min=_env_int("DB_POOL_MIN", 1),
        db_pool_max=_env_int("DB_POOL_MAX", 10),
        db_command_timeout=_env_int("DB_COMMAND_TIMEOUT", 30),
        log_level=parse_log_level(os.environ.get("LOG_LEVEL")),
    )

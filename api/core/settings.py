"""
Process-wide configuration.

Everything is read from environment variables exactly once (at app creation)
into an immutable `Settings` object. Handlers receive it through FastAPI
dependencies (`get_settings`) instead of reading `os.environ` themselves.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import Request

DEFAULT_API_KEYS = "demo-key"
DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _sanitize_database_url(url: str) -> str:
    # asyncpg rejects libpq's sslmode query parameter.
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def _split_csv(raw: str) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def parse_api_keys(raw: str) -> frozenset[str]:
    return frozenset(_split_csv(raw))


@dataclass(frozen=True)
class Settings:
    database_url: str = ""
    api_keys: frozenset[str] = field(default_factory=lambda: parse_api_keys(DEFAULT_API_KEYS))
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_command_timeout: float = 30.0
    records_page_default: int = 20
    records_page_max: int = 1000
    subcategories_page_default: int = 20
    subcategories_page_max: int = 100
    match_tolerance: float = 0.1
    match_fan_out: bool = False
    cors_allow_origins: tuple[str, ...] = tuple(_split_csv(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"

    def require_database_url(self) -> str:
        if not self.database_url:
            raise RuntimeError("DATABASE_URL is not set.")
        return self.database_url


def load_settings() -> Settings:
    """
    Build settings from the environment. Invalid numbers fall back to defaults.
    """
    defaults = Settings()
    return Settings(
        database_url=_sanitize_database_url(os.environ.get("DATABASE_URL", "").strip()),
        api_keys=parse_api_keys(_env_str("API_KEYS", DEFAULT_API_KEYS)),
        db_pool_min_size=_env_int("DB_POOL_MIN_SIZE", defaults.db_pool_min_size),
        db_pool_max_size=_env_int("DB_POOL_MAX_SIZE", defaults.db_pool_max_size),
        db_command_timeout=_env_float("DB_COMMAND_TIMEOUT", defaults.db_command_timeout),
        records_page_default=_env_int("RECORDS_PAGE_DEFAULT", defaults.records_page_default),
        records_page_max=_env_int("RECORDS_PAGE_MAX", defaults.records_page_max),
        subcategories_page_default=_env_int("SUBCATEGORIES_PAGE_DEFAULT", defaults.subcategories_page_default),
        subcategories_page_max=_env_int("SUBCATEGORIES_PAGE_MAX", defaults.subcategories_page_max),
        match_tolerance=_env_float("MATCH_TOLERANCE", defaults.match_tolerance),
        match_fan_out=_env_flag("MATCH_FAN_OUT", defaults.match_fan_out),
        cors_allow_origins=tuple(_split_csv(_env_str("CORS_ALLOW_ORIGINS", DEFAULT_CORS_ORIGINS))),
        log_level=_env_str("LOG_LEVEL", defaults.log_level).upper(),
    )


def get_settings(request: Request) -> Settings:
    return request.app.state.settings

"""
Process configuration, read once from the environment.

`Settings` is built by the composition root (see `api/main.py`) and is
never mutated afterwards. Feature code receives it through the service
container instead of reading `os.environ` on its own.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:3000",
    "https://localhost:3000",
    "http://localhost:5132",
    "https://localhost:7057",
)

DEFAULT_PREVIEW_PREFIX = "work-space-agromind"
DEFAULT_PREVIEW_OWNER = "agromind-projects"
DEFAULT_PREVIEW_DOMAIN = "vercel.app"

DEFAULT_ADMIN_EMAIL = "admin@agromind.local"
DEFAULT_ADMIN_PASSWORD = "dev-change-this-password"
DEFAULT_ADMIN_DISPLAY_NAME = "AgroMind Admin"


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


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


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = ""
    redis_url: str = ""
    redis_connect_timeout_s: float = 3.0
    cors_allowed_origins: tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS
    cors_preview_prefix: str = DEFAULT_PREVIEW_PREFIX
    cors_preview_owner: str = DEFAULT_PREVIEW_OWNER
    cors_preview_domain: str = DEFAULT_PREVIEW_DOMAIN
    admin_email: str = DEFAULT_ADMIN_EMAIL
    # Local default keeps development simple.
    # In production, set ADMIN_PASSWORD in environment.
    admin_password: str = field(default=DEFAULT_ADMIN_PASSWORD, repr=False)
    admin_display_name: str = DEFAULT_ADMIN_DISPLAY_NAME
    basket_ttl_days: int = 30
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            database_url=_env_str("DATABASE_URL"),
            redis_url=_env_str("REDIS_URL"),
            redis_connect_timeout_s=_env_float("REDIS_CONNECT_TIMEOUT_S", 3.0),
            cors_allowed_origins=_env_list("CORS_ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS),
            cors_preview_prefix=_env_str("CORS_PREVIEW_PREFIX", DEFAULT_PREVIEW_PREFIX),
            cors_preview_owner=_env_str("CORS_PREVIEW_OWNER", DEFAULT_PREVIEW_OWNER),
            cors_preview_domain=_env_str("CORS_PREVIEW_DOMAIN", DEFAULT_PREVIEW_DOMAIN),
            admin_email=_env_str("ADMIN_EMAIL", DEFAULT_ADMIN_EMAIL) or DEFAULT_ADMIN_EMAIL,
            admin_password=_env_str("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD) or DEFAULT_ADMIN_PASSWORD,
            admin_display_name=_env_str("ADMIN_DISPLAY_NAME", DEFAULT_ADMIN_DISPLAY_NAME)
            or DEFAULT_ADMIN_DISPLAY_NAME,
            basket_ttl_days=max(1, _env_int("BASKET_TTL_DAYS", 30)),
            log_level=(_env_str("LOG_LEVEL", "INFO") or "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()

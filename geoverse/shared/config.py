from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _int(name: str, default: int) -> int:
    value = _env(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _bool(name: str, default: bool = False) -> bool:
    value = _env(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _csv(name: str) -> tuple[str, ...]:
    value = _env(name, "") or ""
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str
    auto_create_schema: bool
    api_key: str
    jwt_access_secret: str
    jwt_refresh_secret: str
    jwt_issuer: str
    jwt_access_ttl_minutes: int
    jwt_refresh_ttl_days: int
    google_client_id: str
    google_client_secret: str
    google_redirect_uri: str
    google_timeout_seconds: float
    frontend_url: str
    cors_origins: tuple[str, ...]
    rate_limit_storage_uri: str
    rate_limit_global: str
    rate_limit_data: str
    rate_limit_auth: str
    activity_touch_interval_seconds: int
    log_level: str


def get_settings() -> Settings:
    frontend_url = _env("FRONTEND_URL", "http://localhost:5500").rstrip("/")
    return Settings(
        database_url=_env("DATABASE_URL", ""),
        auto_create_schema=_bool("AUTO_CREATE_SCHEMA"),
        api_key=_env("API_KEY", ""),
        jwt_access_secret=_env("JWT_ACCESS_SECRET", ""),
        jwt_refresh_secret=_env("JWT_REFRESH_SECRET", ""),
        jwt_issuer=_env("JWT_ISSUER", "geoverse"),
        jwt_access_ttl_minutes=_int("JWT_ACCESS_TTL_MINUTES", 15),
        jwt_refresh_ttl_days=_int("JWT_REFRESH_TTL_DAYS", 7),
        google_client_id=_env("GOOGLE_CLIENT_ID", ""),
        google_client_secret=_env("GOOGLE_CLIENT_SECRET", ""),
        google_redirect_uri=_env("GOOGLE_REDIRECT_URI", ""),
        google_timeout_seconds=float(_env("GOOGLE_TIMEOUT_SECONDS", "10")),
        frontend_url=frontend_url,
        cors_origins=_csv("CORS_ORIGINS") or (frontend_url,),
        rate_limit_storage_uri=_env("RATE_LIMIT_STORAGE_URI", "memory://"),
        rate_limit_global=_env("RATE_LIMIT_GLOBAL", "1000/900"),
        rate_limit_data=_env("RATE_LIMIT_DATA", "100/900"),
        rate_limit_auth=_env("RATE_LIMIT_AUTH", "10/900"),
        activity_touch_interval_seconds=_int("ACTIVITY_TOUCH_INTERVAL_SECONDS", 60),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
    )

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    mission_timezone: str = "UTC"
    leaderboard_cache_ttl: int = 60

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def mission_tz(self) -> ZoneInfo:
        return ZoneInfo(self.mission_timezone)


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "8000")
    tz_raw = _getenv("MISSION_TIMEZONE", "UTC")
    ttl_raw = _getenv("LEADERBOARD_CACHE_TTL", "60")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        ZoneInfo(tz_raw)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"MISSION_TIMEZONE must be an IANA zone name (got {tz_raw!r})"
        ) from None

    try:
        leaderboard_cache_ttl = int(ttl_raw)
    except ValueError:
        raise ValueError(
            f"LEADERBOARD_CACHE_TTL must be an integer (got {ttl_raw!r})"
        ) from None
    if leaderboard_cache_ttl < 0:
        raise ValueError(
            f"LEADERBOARD_CACHE_TTL must be >= 0 (got {leaderboard_cache_ttl})"
        )

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in _TRUTHY,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        mission_timezone=tz_raw,
        leaderboard_cache_ttl=leaderboard_cache_ttl,
    )


SETTINGS = load_settings()

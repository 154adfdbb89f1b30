"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_optional(name: str) -> str | None:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    database_path: Path | str
    wordpress_api_key: str | None
    cors_allow_origin: str
    allow_fallback_data: bool
    fallback_random_seed: int
    availability_cache_ttl_seconds: int
    room_result_limit: int
    default_tax_rate: float
    default_service_fee_rate: float
    minimum_stay_nights: int
    large_group_threshold: int
    late_booking_days: int
    max_advance_booking_years: int
    currency: str
    api_base_url: str
    client_timeout_seconds: float
    seed_demo_data: bool


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests derive variants via `replace`."""
    return Settings(
        app_name=os.environ.get("APP_NAME", "Heiwa Booking API"),
        app_version=os.environ.get("APP_VERSION", "1.0.0"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        database_path=Path(os.environ.get("DATABASE_PATH", "data/heiwa.db")),
        wordpress_api_key=_env_optional("WORDPRESS_API_KEY"),
        cors_allow_origin=os.environ.get("CORS_ALLOW_ORIGIN", "https://heiwahouse.com"),
        allow_fallback_data=_env_bool("HEIWA_ALLOW_FALLBACK_DATA", True),
        fallback_random_seed=int(os.environ.get("FALLBACK_RANDOM_SEED", "2024")),
        availability_cache_ttl_seconds=int(
            os.environ.get("AVAILABILITY_CACHE_TTL_SECONDS", "300")
        ),
        room_result_limit=int(os.environ.get("ROOM_RESULT_LIMIT", "8")),
        default_tax_rate=float(os.environ.get("TAX_RATE", "0.10")),
        default_service_fee_rate=float(os.environ.get("SERVICE_FEE_RATE", "0.05")),
        minimum_stay_nights=int(os.environ.get("MINIMUM_STAY_NIGHTS", "2")),
        large_group_threshold=4,
        late_booking_days=2,
        max_advance_booking_years=int(os.environ.get("MAX_ADVANCE_BOOKING_YEARS", "2")),
        currency=os.environ.get("CURRENCY", "EUR"),
        api_base_url=os.environ.get("HEIWA_API_BASE_URL", "http://127.0.0.1:8000"),
        client_timeout_seconds=float(os.environ.get("HEIWA_CLIENT_TIMEOUT_SECONDS", "5")),
        seed_demo_data=_env_bool("SEED_DEMO_DATA", True),
    )

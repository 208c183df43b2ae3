"""Configuration module for the Rendezvous application."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from rendezvous.core.exceptions import ConfigurationError

load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int_tuple(value: str | None, default: tuple[int, ...]) -> tuple[int, ...]:
    if value is None or not value.strip():
        return default
    try:
        return tuple(int(part) for part in value.split(",") if part.strip())
    except ValueError as exc:
        raise ConfigurationError(f"Expected a comma separated list of integers, got {value!r}.") from exc


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    API_PREFIX: str
    LOG_LEVEL: str
    LOG_FILE: str
    PLATFORM_FEE_PERCENT: int
    DEFAULT_CURRENCY: str
    CREDIT_PACKS: tuple[int, ...]
    SYNC_POLL_INTERVAL_SECONDS: float
    STREAM_HEARTBEAT_SECONDS: float
    DEFAULT_OFFER_VALIDITY_DAYS: int
    CELERY_BROKER_URL: str
    CELERY_RESULT_BACKEND: str
    AGREEMENT_SWEEP_INTERVAL_SECONDS: int

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=False)

    config = Config(
        APP_NAME="Rendezvous",
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./rendezvous.db"),
        API_PREFIX=os.getenv("API_PREFIX", "/api/v1"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", ""),
        PLATFORM_FEE_PERCENT=int(os.getenv("PLATFORM_FEE_PERCENT", "2")),
        DEFAULT_CURRENCY=os.getenv("DEFAULT_CURRENCY", "eur").strip().lower(),
        CREDIT_PACKS=_as_int_tuple(os.getenv("CREDIT_PACKS"), default=(3, 10)),
        SYNC_POLL_INTERVAL_SECONDS=float(os.getenv("SYNC_POLL_INTERVAL_SECONDS", "15")),
        STREAM_HEARTBEAT_SECONDS=float(os.getenv("STREAM_HEARTBEAT_SECONDS", "15")),
        DEFAULT_OFFER_VALIDITY_DAYS=int(os.getenv("DEFAULT_OFFER_VALIDITY_DAYS", "7")),
        CELERY_BROKER_URL=os.getenv("CELERY_BROKER_URL", os.getenv("REDIS_URL", "redis://localhost:6379/0")),
        CELERY_RESULT_BACKEND=os.getenv("CELERY_RESULT_BACKEND", os.getenv("REDIS_URL", "redis://localhost:6379/0")),
        AGREEMENT_SWEEP_INTERVAL_SECONDS=int(os.getenv("AGREEMENT_SWEEP_INTERVAL_SECONDS", "300")),
    )
    _validate_config(config)
    return config


def _validate_database_url(database_url: str) -> None:
    parsed = urlparse(database_url)
    if parsed.scheme not in {"sqlite", "postgresql", "postgresql+psycopg2"}:
        raise ConfigurationError(
            "DATABASE_URL must use sqlite:// or postgresql:// style URL."
        )
    if parsed.scheme.startswith("postgresql") and not parsed.hostname:
        raise ConfigurationError("PostgreSQL DATABASE_URL is missing hostname.")


def _validate_config(config: Config) -> None:
    _validate_database_url(config.DATABASE_URL)

    if not 0 <= config.PLATFORM_FEE_PERCENT <= 100:
        raise ConfigurationError("PLATFORM_FEE_PERCENT must be between 0 and 100.")
    if len(config.DEFAULT_CURRENCY) != 3:
        raise ConfigurationError("DEFAULT_CURRENCY must be a 3-letter ISO code.")
    if not config.CREDIT_PACKS or any(pack < 1 for pack in config.CREDIT_PACKS):
        raise ConfigurationError("CREDIT_PACKS must list positive credit counts.")
    if config.SYNC_POLL_INTERVAL_SECONDS <= 0:
        raise ConfigurationError("SYNC_POLL_INTERVAL_SECONDS must be > 0.")
    if config.STREAM_HEARTBEAT_SECONDS <= 0:
        raise ConfigurationError("STREAM_HEARTBEAT_SECONDS must be > 0.")
    if config.DEFAULT_OFFER_VALIDITY_DAYS < 1:
        raise ConfigurationError("DEFAULT_OFFER_VALIDITY_DAYS must be >= 1.")
    if config.AGREEMENT_SWEEP_INTERVAL_SECONDS < 1:
        raise ConfigurationError("AGREEMENT_SWEEP_INTERVAL_SECONDS must be >= 1.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.is_production and "change_me" in config.DATABASE_URL.lower():
        raise ConfigurationError("Production DATABASE_URL uses placeholder credentials.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)

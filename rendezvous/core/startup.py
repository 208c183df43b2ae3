"""Startup validation and bootstrap helpers."""

from __future__ import annotations

import logging

from rendezvous.core.config import get_config
from rendezvous.core.logging_config import configure_logging
from rendezvous.database.db import get_active_database_url, verify_database_connection

logger = logging.getLogger(__name__)


def validate_startup_config() -> None:
    """Fail-fast connectivity check, then log the settings the broker runs with."""
    config = get_config()
    active_database_url = get_active_database_url()
    if not verify_database_connection():
        raise RuntimeError("Database connectivity check failed.")

    if config.is_production and active_database_url.startswith("sqlite"):
        logger.warning(
            "startup.production.sqlite_detected",
            extra={"event": "startup.production.sqlite_detected"},
        )
    if config.STREAM_HEARTBEAT_SECONDS > config.SYNC_POLL_INTERVAL_SECONDS:
        logger.warning(
            "startup.stream_heartbeat_exceeds_poll_interval",
            extra={
                "event": "startup.stream_heartbeat_exceeds_poll_interval",
                "stream_heartbeat_seconds": config.STREAM_HEARTBEAT_SECONDS,
                "sync_poll_interval_seconds": config.SYNC_POLL_INTERVAL_SECONDS,
            },
        )

    logger.info(
        "startup.config.validated",
        extra={
            "event": "startup.config.validated",
            "env": config.ENV,
            "database_url_scheme": active_database_url.split("://", 1)[0],
            "credit_packs": list(config.CREDIT_PACKS),
            "platform_fee_percent": config.PLATFORM_FEE_PERCENT,
            "default_currency": config.DEFAULT_CURRENCY,
            "default_offer_validity_days": config.DEFAULT_OFFER_VALIDITY_DAYS,
            "agreement_sweep_interval_seconds": config.AGREEMENT_SWEEP_INTERVAL_SECONDS,
            "sync_poll_interval_seconds": config.SYNC_POLL_INTERVAL_SECONDS,
            "stream_heartbeat_seconds": config.STREAM_HEARTBEAT_SECONDS,
        },
    )


def bootstrap() -> None:
    """Initialize logging and validate runtime configuration."""
    configure_logging()
    validate_startup_config()

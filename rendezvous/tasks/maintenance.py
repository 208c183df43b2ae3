"""Periodic maintenance over the conversation logs."""

from __future__ import annotations

import logging
from datetime import datetime

from rendezvous.database.db import get_db_session
from rendezvous.services.agreement_service import AgreementService
from rendezvous.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def run_agreement_expiry(now: datetime | None = None) -> dict:
    """Expire lapsed agreement offers; returns a summary for the task result."""
    with get_db_session() as db:
        expired = AgreementService(db).expire_lapsed(now=now)
    logger.info(
        "tasks.agreement_expiry.completed",
        extra={"event": "tasks.agreement_expiry.completed", "expired": len(expired)},
    )
    return {"expired": expired}


@celery_app.task(name="rendezvous.agreements.expire_lapsed")
def expire_lapsed_agreements() -> dict:
    return run_agreement_expiry()

from __future__ import annotations

from contextlib import contextmanager
from datetime import timedelta

import rendezvous.tasks.maintenance as maintenance
from rendezvous.core.enums import SenderRole
from rendezvous.database.init_db import provision_brand, provision_showroom
from rendezvous.models.base import utcnow
from rendezvous.services.agreement_service import AgreementService
from rendezvous.services.event_log_service import Actor


def test_expiry_task_sweeps_lapsed_offers(monkeypatch, session_factory, broadcaster):
    db = session_factory()
    brand = provision_brand(db, "Maison Lune", credits=0)
    showroom = provision_showroom(db, "Atelier Nord")
    db.commit()
    service = AgreementService(db=db, broadcaster=broadcaster, default_validity_days=7)
    conversation = service.events.open_conversation(brand.id, showroom.id)
    actor = Actor(user_id="showroom-user", role=SenderRole.SHOWROOM, account_id=showroom.id)
    offer = service.send(conversation.id, actor, {"rent": 250, "validity_days": 1})
    db.close()

    @contextmanager
    def _session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(maintenance, "get_db_session", _session)

    assert maintenance.run_agreement_expiry(now=utcnow() + timedelta(days=2)) == {"expired": [offer.id]}
    assert maintenance.run_agreement_expiry(now=utcnow() + timedelta(days=3)) == {"expired": []}


def test_expiry_task_is_on_the_beat_schedule():
    schedule = maintenance.celery_app.conf.beat_schedule["expire-lapsed-agreements"]
    assert schedule["task"] == "rendezvous.agreements.expire_lapsed"

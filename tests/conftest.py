from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rendezvous.core.enums import SenderRole
from rendezvous.database.init_db import provision_brand, provision_showroom
from rendezvous.models import Base
from rendezvous.services.event_log_service import Actor
from rendezvous.sync.broadcaster import EventBroadcaster


def _session_factory(engine):
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield _session_factory(engine)
    engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'rendezvous_test.db'}",
        connect_args={"timeout": 15, "check_same_thread": False},
    )
    yield _session_factory(engine)
    engine.dispose()


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def broadcaster():
    return EventBroadcaster()


@pytest.fixture
def brand(session):
    brand = provision_brand(session, "Maison Lune", credits=3)
    session.commit()
    return brand


@pytest.fixture
def showroom(session):
    showroom = provision_showroom(session, "Atelier Nord", city="Lyon")
    session.commit()
    return showroom


@pytest.fixture
def brand_actor(brand):
    return Actor(user_id=f"brand-user-{brand.id}", role=SenderRole.BRAND, account_id=brand.id)


@pytest.fixture
def showroom_actor(showroom):
    return Actor(user_id=f"showroom-user-{showroom.id}", role=SenderRole.SHOWROOM, account_id=showroom.id)

"""Create the schema and provision accounts from the command line."""

from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import Session

import rendezvous.database.db as db_module
from rendezvous.core.startup import bootstrap
from rendezvous.models import Base, Brand, Showroom

logger = logging.getLogger(__name__)


def init_db() -> None:
    bootstrap()
    Base.metadata.create_all(bind=db_module.get_engine())
    logger.info(
        "database.tables.created",
        extra={
            "event": "database.tables.created",
            "database_url": db_module.get_active_database_url(),
        },
    )


def provision_brand(db: Session, name: str, credits: int = 0) -> Brand:
    """Create a brand account with an opening credit balance."""
    if credits < 0:
        raise ValueError("credits must be >= 0")
    brand = Brand(name=name, credits=credits, reserved_credits=0)
    db.add(brand)
    db.flush()
    logger.info(
        "account.brand.provisioned",
        extra={"event": "account.brand.provisioned", "brand_id": brand.id, "credits": credits},
    )
    return brand


def provision_showroom(db: Session, name: str, city: str | None = None) -> Showroom:
    showroom = Showroom(name=name, city=city)
    db.add(showroom)
    db.flush()
    logger.info(
        "account.showroom.provisioned",
        extra={"event": "account.showroom.provisioned", "showroom_id": showroom.id},
    )
    return showroom


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Create tables and optionally provision accounts.")
    parser.add_argument("--brand", action="append", default=[], help="NAME[:CREDITS]")
    parser.add_argument("--showroom", action="append", default=[], help="NAME[:CITY]")
    args = parser.parse_args(argv)

    init_db()
    with db_module.get_db_session() as db:
        for spec in args.brand:
            name, _, credits = spec.partition(":")
            provision_brand(db, name, int(credits or 0))
        for spec in args.showroom:
            name, _, city = spec.partition(":")
            provision_showroom(db, name, city or None)
        db.commit()


if __name__ == "__main__":
    main()

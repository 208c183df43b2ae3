"""Credit escrow ledger for brand accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError

from rendezvous.core.config import get_config
from rendezvous.core.enums import LedgerEntryKind
from rendezvous.core.exceptions import (
    AlreadyResolvedError,
    InsufficientCreditsError,
    NotFoundError,
    ValidationError,
)
from rendezvous.core.logging import LogContext, build_log_event
from rendezvous.models import Brand, LedgerEntry
from rendezvous.services.base_service import BaseService

logger = logging.getLogger(__name__)


def reserve_reference(root_event_id: int) -> str:
    return f"reserve:{root_event_id}"


def settle_reference(root_event_id: int) -> str:
    return f"settle:{root_event_id}"


def top_up_reference(purchase_reference: str) -> str:
    return f"top_up:{purchase_reference}"


@dataclass(frozen=True)
class CreditBalance:
    brand_id: int
    credits: int
    reserved: int

    @property
    def available(self) -> int:
        return self.credits - self.reserved


@dataclass(frozen=True)
class LedgerResult:
    applied: bool
    balance: CreditBalance


class CreditLedgerService(BaseService):
    """Reserve, commit, release and top up brand credits.

    Each mutation is a single conditional UPDATE on ``brands`` followed by a
    journal insert keyed by ``reference``. The row write lock (the database
    lock on SQLite) serializes mutations of one brand, and the WHERE clause
    is evaluated against the committed row.

    ``reserve``, ``commit_reservation`` and ``release`` run inside the
    caller's transaction and never commit; ``top_up`` is a command of its own.
    ``commit_reservation`` and ``release`` of one candidacy share the
    ``settle:`` reference, so at most one of them can ever apply.
    """

    def balance(self, brand_id: int) -> CreditBalance:
        brand = self.db.get(Brand, brand_id, populate_existing=True)
        if brand is None:
            raise NotFoundError(f"Brand not found: {brand_id}")
        return CreditBalance(brand_id=brand.id, credits=brand.credits, reserved=brand.reserved_credits)

    def reserve(self, brand_id: int, reference: str) -> LedgerResult:
        stmt = (
            update(Brand)
            .where(Brand.id == brand_id, Brand.credits - Brand.reserved_credits >= 1)
            .values(reserved_credits=Brand.reserved_credits + 1)
        )
        return self._apply(brand_id, LedgerEntryKind.RESERVE, reference, stmt, delta_reserved=1)

    def commit_reservation(self, brand_id: int, reference: str) -> LedgerResult:
        stmt = (
            update(Brand)
            .where(Brand.id == brand_id)
            .values(
                credits=case((Brand.credits > 0, Brand.credits - 1), else_=0),
                reserved_credits=case((Brand.reserved_credits > 0, Brand.reserved_credits - 1), else_=0),
            )
        )
        return self._apply(brand_id, LedgerEntryKind.COMMIT, reference, stmt, delta_credits=-1, delta_reserved=-1)

    def release(self, brand_id: int, reference: str) -> LedgerResult:
        stmt = (
            update(Brand)
            .where(Brand.id == brand_id)
            .values(reserved_credits=case((Brand.reserved_credits > 0, Brand.reserved_credits - 1), else_=0))
        )
        return self._apply(brand_id, LedgerEntryKind.RELEASE, reference, stmt, delta_reserved=-1)

    def top_up(self, brand_id: int, credit_count: int, purchase_reference: str) -> LedgerResult:
        """Credit a purchased pack once per purchase reference, then commit."""
        packs = get_config().CREDIT_PACKS
        if credit_count not in packs:
            raise ValidationError(f"Unknown credit pack {credit_count}; expected one of {list(packs)}.")
        if not purchase_reference or not purchase_reference.strip():
            raise ValidationError("purchase_reference is required.")

        stmt = update(Brand).where(Brand.id == brand_id).values(credits=Brand.credits + credit_count)
        try:
            with self.unit_of_work():
                result = self._apply(
                    brand_id,
                    LedgerEntryKind.TOP_UP,
                    top_up_reference(purchase_reference.strip()),
                    stmt,
                    delta_credits=credit_count,
                )
        except AlreadyResolvedError:
            return LedgerResult(applied=False, balance=self.balance(brand_id))
        return result

    def has_entry(self, reference: str) -> bool:
        return self.db.scalar(select(LedgerEntry.id).where(LedgerEntry.reference == reference)) is not None

    def entries(self, brand_id: int) -> list[LedgerEntry]:
        stmt = select(LedgerEntry).where(LedgerEntry.brand_id == brand_id).order_by(LedgerEntry.id.asc())
        return list(self.db.scalars(stmt))

    def _apply(
        self,
        brand_id: int,
        kind: LedgerEntryKind,
        reference: str,
        stmt,
        delta_credits: int = 0,
        delta_reserved: int = 0,
    ) -> LedgerResult:
        context = LogContext(brand_id=brand_id)
        if self.has_entry(reference):
            logger.info(
                f"ledger.{kind.value}.replayed",
                extra=build_log_event(f"ledger.{kind.value}.replayed", context, reference=reference),
            )
            return LedgerResult(applied=False, balance=self.balance(brand_id))

        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount == 0:
            balance = self.balance(brand_id)
            logger.info(
                f"ledger.{kind.value}.insufficient",
                extra=build_log_event(
                    f"ledger.{kind.value}.insufficient", context, reference=reference, available=balance.available
                ),
            )
            raise InsufficientCreditsError(brand_id, balance.available)

        self.db.add(
            LedgerEntry(
                brand_id=brand_id,
                kind=kind,
                reference=reference,
                delta_credits=delta_credits,
                delta_reserved=delta_reserved,
            )
        )
        try:
            self.db.flush()
        except IntegrityError as exc:
            # Another transaction applied the same reference first.
            self.rollback()
            logger.warning(
                "ledger.duplicate_reference",
                extra=build_log_event("ledger.duplicate_reference", context, reference=reference),
            )
            raise AlreadyResolvedError(f"Ledger reference {reference} was already applied") from exc

        balance = self.balance(brand_id)
        logger.info(
            f"ledger.{kind.value}.applied",
            extra=build_log_event(
                f"ledger.{kind.value}.applied",
                context,
                reference=reference,
                credits=balance.credits,
                reserved=balance.reserved,
            ),
        )
        return LedgerResult(applied=True, balance=balance)

"""Credit ledger journal model module."""

from __future__ import annotations

from sqlalchemy import Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rendezvous.core.enums import LedgerEntryKind
from rendezvous.models.base import AuditMixin, Base, enum_values


class LedgerEntry(Base, AuditMixin):
    """Journal row written in the same transaction as each counter update.

    ``reference`` is unique and acts as the idempotency key of the mutation.
    """

    __tablename__ = "credit_ledger_entries"
    __table_args__ = (Index("idx_ledger_entries_brand", "brand_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    brand_id: Mapped[int] = mapped_column(ForeignKey("brands.id", ondelete="RESTRICT"), nullable=False)
    kind: Mapped[LedgerEntryKind] = mapped_column(
        Enum(LedgerEntryKind, native_enum=False, length=16, values_callable=enum_values), nullable=False
    )
    reference: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    delta_credits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    delta_reserved: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

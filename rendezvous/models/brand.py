"""Brand and showroom account models."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rendezvous.models.base import AuditMixin, Base


class Brand(Base, AuditMixin):
    """A brand account and its credit escrow counters.

    ``credits`` is the owned balance and ``reserved_credits`` the part of it
    escrowed against pending candidacies. Only the ledger service writes
    these two columns.
    """

    __tablename__ = "brands"
    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_brands_credits_non_negative"),
        CheckConstraint("reserved_credits >= 0", name="ck_brands_reserved_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reserved_credits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    @property
    def available_credits(self) -> int:
        return self.credits - self.reserved_credits


class Showroom(Base, AuditMixin):
    __tablename__ = "showrooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str | None] = mapped_column(String(255))

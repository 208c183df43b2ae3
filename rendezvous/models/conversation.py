"""Conversation model module."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rendezvous.models.base import AuditMixin, Base


class Conversation(Base, AuditMixin):
    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("brand_id", "showroom_id", "listing_id", name="uq_conversations_pair_listing"),
        Index("idx_conversations_brand_updated", "brand_id", "updated_at"),
        Index("idx_conversations_showroom_updated", "showroom_id", "updated_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    brand_id: Mapped[int] = mapped_column(ForeignKey("brands.id", ondelete="RESTRICT"), nullable=False)
    showroom_id: Mapped[int] = mapped_column(ForeignKey("showrooms.id", ondelete="RESTRICT"), nullable=False)
    listing_id: Mapped[int | None] = mapped_column(Integer)

    brand = relationship("Brand")
    showroom = relationship("Showroom")

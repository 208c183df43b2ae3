"""Payment request model module."""

from __future__ import annotations

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rendezvous.core.enums import PaymentRequestStatus, PaymentRequestType, SenderRole
from rendezvous.models.base import AuditMixin, Base, enum_values


class PaymentRequest(Base, AuditMixin):
    __tablename__ = "payment_requests"
    __table_args__ = (
        Index("idx_payment_requests_conversation", "conversation_id", "status"),
        Index("idx_payment_requests_brand", "counterpart_brand_id", "status"),
        Index("idx_payment_requests_showroom", "counterpart_showroom_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    conversation_id: Mapped[int] = mapped_column(ForeignKey("conversations.id", ondelete="RESTRICT"), nullable=False)
    type: Mapped[PaymentRequestType] = mapped_column(
        Enum(PaymentRequestType, native_enum=False, length=16, values_callable=enum_values), nullable=False
    )
    initiator_side: Mapped[SenderRole] = mapped_column(
        Enum(SenderRole, native_enum=False, length=16, values_callable=enum_values), nullable=False
    )
    counterpart_brand_id: Mapped[int] = mapped_column(ForeignKey("brands.id", ondelete="RESTRICT"), nullable=False)
    counterpart_showroom_id: Mapped[int] = mapped_column(
        ForeignKey("showrooms.id", ondelete="RESTRICT"), nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    fee_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    motif: Mapped[str | None] = mapped_column(Text)
    attachment_path: Mapped[str | None] = mapped_column(String(512))
    status: Mapped[PaymentRequestStatus] = mapped_column(
        Enum(PaymentRequestStatus, native_enum=False, length=16, values_callable=enum_values),
        default=PaymentRequestStatus.PENDING,
        nullable=False,
    )
    contest_note: Mapped[str | None] = mapped_column(Text)
    proposed_amount_cents: Mapped[int | None] = mapped_column(Integer)
    event_id: Mapped[int | None] = mapped_column(ForeignKey("events.id", ondelete="RESTRICT"))

"""Conversation event log model module."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Boolean, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rendezvous.core.enums import EventType, SenderRole
from rendezvous.models.base import AuditMixin, Base, enum_values


class Event(Base, AuditMixin):
    """One entry of a conversation's append-only log.

    Rows are never deleted. Only ``payload['status']``, the terminal
    timestamps inside ``payload`` and ``is_read`` change after insert.
    """

    __tablename__ = "events"
    __table_args__ = (
        Index("idx_events_conversation_order", "conversation_id", "created_at", "id"),
        Index("idx_events_conversation_type", "conversation_id", "type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    conversation_id: Mapped[int] = mapped_column(
        ForeignKey("conversations.id", ondelete="RESTRICT"), nullable=False
    )
    type: Mapped[EventType] = mapped_column(
        Enum(EventType, native_enum=False, length=32, values_callable=enum_values), nullable=False
    )
    sender_id: Mapped[str | None] = mapped_column(String(64))
    sender_role: Mapped[SenderRole | None] = mapped_column(
        Enum(SenderRole, native_enum=False, length=16, values_callable=enum_values)
    )
    content: Mapped[str | None] = mapped_column(Text)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def status(self) -> str | None:
        return (self.payload or {}).get("status")

    @property
    def reference_event_id(self) -> int | None:
        value = (self.payload or {}).get("reference_message_id")
        return int(value) if value is not None else None

"""Conversation and event schemas for API contracts."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from rendezvous.core.enums import EventType, SenderRole


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: int
    type: EventType
    sender_id: str | None = None
    sender_role: SenderRole | None = None
    content: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    created_at: datetime
    updated_at: datetime | None = None


class ConversationCreateRequest(BaseModel):
    brand_id: int = Field(ge=1)
    showroom_id: int = Field(ge=1)
    listing_id: int | None = Field(default=None, ge=1)


class ConversationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    brand_id: int
    showroom_id: int
    listing_id: int | None = None
    created_at: datetime
    updated_at: datetime


class InboxItem(BaseModel):
    conversation: ConversationResponse
    last_event: EventResponse | None = None
    preview: str
    unread_count: int = 0


class MessageCreateRequest(BaseModel):
    text: str = Field(min_length=1, max_length=10000)


class DocumentShareRequest(BaseModel):
    path: str = Field(min_length=1, max_length=512)
    file_name: str | None = Field(default=None, max_length=255)
    mime_type: str | None = Field(default=None, max_length=128)
    note: str | None = Field(default=None, max_length=10000)
    contract: bool = False


class ReadReceipt(BaseModel):
    conversation_id: int
    marked_read: int

from __future__ import annotations

from datetime import timedelta

import pytest

from rendezvous.core.enums import EventType, SenderRole
from rendezvous.core.exceptions import (
    AlreadyResolvedError,
    NotFoundError,
    OrderingViolationError,
    PermissionDeniedError,
    ValidationError,
)
from rendezvous.database.init_db import provision_showroom
from rendezvous.services.event_log_service import Actor, EventLogService, preview_label


@pytest.fixture
def service(session, broadcaster):
    return EventLogService(db=session, broadcaster=broadcaster)


def test_get_or_create_reuses_the_conversation_without_listing(service, brand, showroom):
    first = service.open_conversation(brand.id, showroom.id)
    again = service.open_conversation(brand.id, showroom.id)
    scoped = service.open_conversation(brand.id, showroom.id, listing_id=42)

    assert again.id == first.id
    assert scoped.id != first.id
    assert scoped.listing_id == 42


def test_get_or_create_requires_known_accounts(service, brand):
    with pytest.raises(NotFoundError):
        service.open_conversation(brand.id, 999)


def test_append_validates_payload_for_the_event_type(service, brand, showroom):
    conversation = service.open_conversation(brand.id, showroom.id)

    with pytest.raises(ValidationError):
        service.append(
            conversation.id,
            EventType.CANDIDACY_SUBMITTED,
            sender_role=SenderRole.BRAND,
            payload={"commission_percent": 250},
        )
    with pytest.raises(ValidationError):
        service.append(conversation.id, EventType.PLAIN_TEXT, payload={"unexpected": True})


def test_events_are_listed_in_log_order(service, brand, showroom, brand_actor):
    conversation = service.open_conversation(brand.id, showroom.id)
    first = service.send_plain_message(conversation.id, "hello", brand_actor)
    second = service.send_plain_message(conversation.id, "are you there?", brand_actor)

    assert [event.id for event in service.list_by_conversation(conversation.id)] == [first.id, second.id]
    assert [event.id for event in service.list_since(conversation.id, first.id)] == [second.id]


def test_terminal_event_must_not_precede_its_proposal(service, brand, showroom):
    conversation = service.open_conversation(brand.id, showroom.id)
    proposal = service.append(
        conversation.id,
        EventType.CANDIDACY_SUBMITTED,
        sender_id="brand-user",
        sender_role=SenderRole.BRAND,
        payload={"commission_percent": 20},
    )

    with pytest.raises(OrderingViolationError):
        service.append(
            conversation.id,
            EventType.CANDIDACY_ACCEPTED,
            sender_role=SenderRole.SHOWROOM,
            payload={"reference_message_id": proposal.id},
            created_at=proposal.created_at - timedelta(minutes=1),
        )


def test_reference_must_belong_to_the_conversation(service, brand, showroom):
    conversation = service.open_conversation(brand.id, showroom.id)
    with pytest.raises(ValidationError):
        service.append(conversation.id, EventType.CANDIDACY_REFUSED, payload={"reference_message_id": 12345})


def test_patch_status_is_bounded_and_terminal_timestamps_are_write_once(service, brand, showroom):
    conversation = service.open_conversation(brand.id, showroom.id)
    proposal = service.append(
        conversation.id,
        EventType.CANDIDACY_SUBMITTED,
        sender_role=SenderRole.BRAND,
        payload={"rent": 300, "rent_period": "month"},
    )

    with pytest.raises(ValidationError):
        service.patch_status(proposal.id, {"rent": 1})

    patched = service.patch_status(proposal.id, {"status": "cancelled", "cancelled_at": "2026-01-01T00:00:00"})
    assert patched.payload["status"] == "cancelled"
    assert patched.payload["rent"] == 300

    with pytest.raises(AlreadyResolvedError):
        service.patch_status(proposal.id, {"cancelled_at": "2026-01-02T00:00:00"})
    with pytest.raises(NotFoundError):
        service.patch_status(424242, {"status": "cancelled"})


def test_plain_text_is_not_patchable(service, brand, showroom, brand_actor):
    conversation = service.open_conversation(brand.id, showroom.id)
    message = service.send_plain_message(conversation.id, "hi", brand_actor)
    with pytest.raises(ValidationError):
        service.patch_status(message.id, {"status": "accepted"})


def test_empty_messages_and_outsiders_are_refused(service, brand, showroom, brand_actor, session):
    conversation = service.open_conversation(brand.id, showroom.id)
    other = provision_showroom(session, "Other Room")
    session.commit()
    outsider = Actor(user_id="other", role=SenderRole.SHOWROOM, account_id=other.id)
    with pytest.raises(ValidationError):
        service.send_plain_message(conversation.id, "   ", brand_actor)
    with pytest.raises(PermissionDeniedError):
        service.send_plain_message(conversation.id, "hello", outsider)


def test_inbox_orders_by_activity_with_previews_and_unread_counts(
    service, session, brand, showroom, brand_actor, showroom_actor
):
    quiet = service.open_conversation(brand.id, showroom.id, listing_id=1)
    busy = service.open_conversation(brand.id, showroom.id, listing_id=2)
    service.send_plain_message(busy.id, "first", showroom_actor)
    service.share_document(busy.id, showroom_actor, "contracts/2026/lune.pdf", contract=True)

    inbox = service.list_conversations(brand_id=brand.id, reader_id=brand_actor.user_id)

    assert [entry.conversation.id for entry in inbox] == [busy.id, quiet.id]
    assert inbox[0].preview == "Contract"
    assert inbox[0].unread_count == 2
    assert inbox[1].preview == "No messages"
    assert inbox[1].unread_count == 0

    assert service.mark_read(busy.id, brand_actor.user_id) == 2
    assert service.unread_counts([busy.id], brand_actor.user_id) == {}
    # The sender's own messages never count as unread for them.
    assert service.unread_counts([busy.id], showroom_actor.user_id) == {}


def test_inbox_requires_exactly_one_scope(service):
    with pytest.raises(ValidationError):
        service.list_conversations()


def test_preview_label_without_events():
    assert preview_label(None) == "No messages"

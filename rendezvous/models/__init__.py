"""Modular SQLAlchemy model package for the conversation schema."""

from rendezvous.models.base import Base
from rendezvous.models.brand import Brand, Showroom
from rendezvous.models.conversation import Conversation
from rendezvous.models.event import Event
from rendezvous.models.ledger_entry import LedgerEntry
from rendezvous.models.payment_request import PaymentRequest

__all__ = [
    "Base",
    "Brand",
    "Conversation",
    "Event",
    "LedgerEntry",
    "PaymentRequest",
    "Showroom",
]

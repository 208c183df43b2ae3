from __future__ import annotations

import pytest

from rendezvous.core.enums import PaymentRequestStatus
from rendezvous.core.exceptions import AlreadyResolvedError
from rendezvous.orchestration.state_machine import InvalidTransitionError, StateMachine
from rendezvous.services.payment_request_service import PAYMENT_TRANSITIONS


def test_state_machine_allows_valid_transition():
    sm = StateMachine({"new": {"running"}, "running": {"completed"}})
    assert sm.can_transition("new", "running") is True
    sm.assert_transition("new", "running")


def test_state_machine_rejects_invalid_transition():
    sm = StateMachine({"new": {"running"}})
    with pytest.raises(InvalidTransitionError):
        sm.assert_transition("new", "completed")


def test_invalid_transition_is_an_already_resolved_error():
    assert issubclass(InvalidTransitionError, AlreadyResolvedError)


def test_payment_transitions_match_lifecycle():
    assert PAYMENT_TRANSITIONS.can_transition(PaymentRequestStatus.PENDING, PaymentRequestStatus.CONTESTED)
    assert PAYMENT_TRANSITIONS.can_transition(PaymentRequestStatus.ACCEPTED, PaymentRequestStatus.COMPLETED)
    assert not PAYMENT_TRANSITIONS.can_transition(PaymentRequestStatus.CONTESTED, PaymentRequestStatus.COMPLETED)
    assert not PAYMENT_TRANSITIONS.can_transition(PaymentRequestStatus.PENDING, PaymentRequestStatus.COMPLETED)
    assert PAYMENT_TRANSITIONS.is_terminal(PaymentRequestStatus.COMPLETED)
    assert PAYMENT_TRANSITIONS.is_terminal(PaymentRequestStatus.CANCELLED)

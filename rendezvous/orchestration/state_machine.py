"""Canonical state transition helpers for status-bearing records."""

from __future__ import annotations

from collections.abc import Hashable

from rendezvous.core.exceptions import AlreadyResolvedError


class InvalidTransitionError(AlreadyResolvedError):
    """Raised when a disallowed state transition is attempted."""


class StateMachine:
    """Transition table for a closed set of statuses."""

    def __init__(self, transitions: dict[Hashable, set[Hashable]]) -> None:
        self._transitions = transitions

    def can_transition(self, current: Hashable, target: Hashable) -> bool:
        return target in self._transitions.get(current, set())

    def assert_transition(self, current: Hashable, target: Hashable) -> None:
        if not self.can_transition(current=current, target=target):
            raise InvalidTransitionError(f"Transition not allowed: {_label(current)} -> {_label(target)}")

    def is_terminal(self, current: Hashable) -> bool:
        return not self._transitions.get(current)


def _label(value: Hashable) -> str:
    return str(getattr(value, "value", value))

"""Custom exceptions for the Rendezvous application."""


class RendezvousException(Exception):
    """Base exception for Rendezvous application."""

    pass


class ValidationError(RendezvousException):
    """Raised when validation fails."""

    pass


class NotFoundError(RendezvousException):
    """Raised when a resource is not found."""

    pass


class ConflictError(RendezvousException):
    """Raised when a command conflicts with the current conversation state."""

    pass


class PermissionDeniedError(RendezvousException):
    """Raised when the acting side is not allowed to perform a command."""

    pass


class ConfigurationError(RendezvousException):
    """Raised when configuration is invalid."""

    pass


class InsufficientCreditsError(RendezvousException):
    """Raised when a brand has no available credit to escrow."""

    def __init__(self, brand_id: int, available: int) -> None:
        super().__init__(f"Brand {brand_id} has {available} available credit(s); a top-up is required.")
        self.brand_id = brand_id
        self.available = available


class AlreadyResolvedError(RendezvousException):
    """Raised when acting on a proposal or payment request that is already closed."""

    pass


class OrderingViolationError(RendezvousException):
    """Raised when a terminal event would precede the proposal it references."""

    pass


class StoreUnavailableError(RendezvousException):
    """Raised on transient storage failures."""

    pass

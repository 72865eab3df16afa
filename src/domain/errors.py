"""
Typed errors raised by the service layer.

The API boundary maps each class to an HTTP status code; nothing below the
boundary knows about HTTP.
"""


class DomainError(Exception):
    """Base class for every error a caller is expected to handle."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    default_message = "Invalid input"


class UnauthorizedError(DomainError):
    default_message = "Unauthorized"


class ForbiddenError(DomainError):
    default_message = "Access denied. Insufficient permissions."


class NotFoundError(DomainError):
    default_message = "Not found"


class ConflictError(DomainError):
    default_message = "Conflict"


class InvalidStateError(DomainError):
    """Raised when a booking status change violates the state machine."""

    default_message = "Invalid state transition"

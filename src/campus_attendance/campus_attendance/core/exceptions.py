class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when an event, student or attendance record does not exist."""

    def __init__(self, resource: str, message: str | None = None):
        super().__init__(message or f"{resource.capitalize()} not found")
        self.resource = resource


class NotEligibleError(DomainError):
    """Raised when a student is outside the scope of an event."""


class ConflictError(DomainError):
    """Raised when a write would leave two open records for one student and event."""


class StoreError(DomainError):
    """Raised when the record store is unavailable or a write was not applied."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFound(DomainError):
    """Raised when a session or record id is unknown."""


class DuplicateSession(DomainError):
    """Raised when a session already exists for the class and date."""


class InvalidSessionTransition(DomainError):
    """Raised when a workflow transition is not allowed from the current state."""

    def __init__(self, current, attempted: str, detail: str | None = None):
        self.current = current
        self.attempted = attempted
        current_name = getattr(current, "value", current)
        message = f"Cannot {attempted} session in {current_name} status"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class UnauthorizedCollector(DomainError):
    """Raised when someone other than the delegated class leader collects."""


class InvalidRecordState(DomainError):
    """Raised when a record would break the writer/session/approval invariants."""

"""
Ledger Errors

All of these are local, recoverable errors. The UI shows the message
and keeps the form as the user left it.

A settlement with nothing held is NOT an error: it comes back as a
PayrollResult with outcome NO_OP.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationError(LedgerError):
    """Malformed or missing input on create, edit or register."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    @classmethod
    def from_pydantic(cls, error: PydanticValidationError) -> "ValidationError":
        """Collapse a pydantic error into one readable message."""
        problems = error.errors()
        if not problems:
            return cls(str(error))
        first = problems[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "Invalid value")
        if location:
            message = f"{location}: {message}"
        return cls(message, field=location or None)


class NotFoundError(LedgerError):
    """A transaction or staff member with this id does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class LedgerIntegrityError(LedgerError):
    """A snapshot holds a value validated paths can never produce."""
    pass

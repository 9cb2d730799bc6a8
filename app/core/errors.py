"""Domain error codes for events and bookings."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence


class ErrorCode(Enum):
    """Domain error codes."""

    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_ENUM = "INVALID_ENUM"
    EMPTY_COLLECTION = "EMPTY_COLLECTION"
    DANGLING_REFERENCE = "DANGLING_REFERENCE"
    UNIQUE_CONSTRAINT_VIOLATION = "UNIQUE_CONSTRAINT_VIOLATION"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    EVENT_HAS_BOOKINGS = "EVENT_HAS_BOOKINGS"


def _label(field: str) -> str:
    if field == "event_id":
        return "Event ID"
    return field.replace("_", " ").capitalize()


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code, user-safe message and offending field."""

    code: ErrorCode
    message: str
    field: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    """A candidate record failed validation and must not be persisted."""


class MissingFieldError(ValidationError):
    """Raised when a required field is absent or blank."""

    def __init__(self, field: str) -> None:
        super().__init__(
            code=ErrorCode.MISSING_FIELD,
            message=f"{_label(field)} is required",
            field=field,
        )


class InvalidFormatError(ValidationError):
    """Raised when a value is present but has the wrong shape."""

    def __init__(self, field: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_FORMAT,
            message=f"Invalid {_label(field).lower()} format",
            field=field,
        )


class InvalidEnumError(ValidationError):
    """Raised when a value is not one of the permitted choices."""

    def __init__(self, field: str, allowed: Sequence[str]) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ENUM,
            message=f"{_label(field)} must be one of: {', '.join(allowed)}",
            field=field,
        )
        self.allowed = tuple(allowed)


class EmptyCollectionError(ValidationError):
    """Raised when a required list is empty or not a list."""

    def __init__(self, field: str) -> None:
        super().__init__(
            code=ErrorCode.EMPTY_COLLECTION,
            message=f"{_label(field)} must contain at least one item",
            field=field,
        )


class DanglingReferenceError(ValidationError):
    """Raised when a reference points at a record that does not exist."""

    def __init__(self, field: str) -> None:
        super().__init__(
            code=ErrorCode.DANGLING_REFERENCE,
            message="Referenced event does not exist",
            field=field,
        )


class UniqueConstraintViolation(DomainError):
    """Raised by a store when a write collides with a unique index."""

    def __init__(self, field: str) -> None:
        super().__init__(
            code=ErrorCode.UNIQUE_CONSTRAINT_VIOLATION,
            message=f"{_label(field)} already exists",
            field=field,
        )


class StoreConnectionError(DomainError):
    """Raised when the document store cannot be reached."""

    def __init__(self, detail: str = "Document store unavailable") -> None:
        super().__init__(code=ErrorCode.CONNECTION_ERROR, message=detail)


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_ref) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_ref = event_ref


class EventHasBookingsError(DomainError):
    """Raised when deleting an event that bookings still reference."""

    def __init__(self, event_id, booking_count: int) -> None:
        super().__init__(
            code=ErrorCode.EVENT_HAS_BOOKINGS,
            message=f"Event has {booking_count} booking(s) and cannot be deleted",
        )
        self.event_id = event_id
        self.booking_count = booking_count

"""Errors raised by the inventory store.

Every error leaves the event table as if the failed operation never ran.
Messages are safe to show to an end user; storage internals stay in the
chained exception and the log.
"""

from enum import Enum


class ErrorCode(Enum):
    INVALID_INPUT = "INVALID_INPUT"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    STORAGE_ERROR = "STORAGE_ERROR"
    STORAGE_TIMEOUT = "STORAGE_TIMEOUT"


class InventoryError(Exception):
    """Base error with a code and a user-safe message."""

    code = ErrorCode.STORAGE_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidInputError(InventoryError):
    """Malformed or out-of-range arguments."""

    code = ErrorCode.INVALID_INPUT


class NotFoundError(InventoryError):
    """The referenced event does not exist."""

    code = ErrorCode.EVENT_NOT_FOUND

    def __init__(self, event_id: int | None = None, *, event_name: str | None = None) -> None:
        if event_name is not None:
            message = f'Event "{event_name}" not found'
        else:
            message = "Event not found"
        super().__init__(message)
        self.event_id = event_id
        self.event_name = event_name


class InsufficientInventoryError(InventoryError):
    """Business-rule rejection: fewer tickets remain than were requested."""

    code = ErrorCode.INSUFFICIENT_INVENTORY

    def __init__(self, *, remaining: int, requested: int) -> None:
        if remaining == 0:
            message = "No tickets available"
        else:
            message = f"Only {remaining} tickets available"
        super().__init__(message)
        self.remaining = remaining
        self.requested = requested


class StorageError(InventoryError):
    """The database failed; the operation was rolled back and may be retried."""

    code = ErrorCode.STORAGE_ERROR

    def __init__(self, message: str = "Storage failure") -> None:
        super().__init__(message)


class StorageTimeoutError(StorageError):
    """The operation ran out of time and was rolled back; safe to retry."""

    code = ErrorCode.STORAGE_TIMEOUT

    def __init__(self, message: str = "Storage timed out") -> None:
        super().__init__(message)

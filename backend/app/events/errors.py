"""Domain error codes for event and registration operations."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    DUPLICATE_REGISTRATION = "DUPLICATE_REGISTRATION"
    USER_BLOCKED = "USER_BLOCKED"
    INVALID_EVENT_DATE = "INVALID_EVENT_DATE"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class EventNotFoundError(DomainError):
    """Raised when an event does not exist."""

    def __init__(self, event_id: object) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_FOUND, message="Event not found")
        object.__setattr__(self, "event_id", event_id)


class UserNotFoundError(DomainError):
    """Raised when a user does not exist."""

    def __init__(self, user_id: object) -> None:
        super().__init__(code=ErrorCode.USER_NOT_FOUND, message="User not found")
        object.__setattr__(self, "user_id", user_id)


class RegistrationNotFoundError(DomainError):
    """Raised when removing a registration that does not exist."""

    def __init__(self) -> None:
        super().__init__(code=ErrorCode.REGISTRATION_NOT_FOUND, message="Registration not found")


class DuplicateRegistrationError(DomainError):
    """Raised when a user registers for the same event twice."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_REGISTRATION,
            message="You have already registered for this event.",
        )


class BlockedUserError(DomainError):
    """Raised when a blocked account attempts to register."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.USER_BLOCKED,
            message="Your account has been blocked. You cannot register for events.",
        )


class InvalidEventDateError(DomainError):
    """Raised when a date string cannot be parsed."""

    def __init__(self, raw: str | None) -> None:
        super().__init__(
            code=ErrorCode.INVALID_EVENT_DATE,
            message="Couldn't parse the date. Use a format like '2025-10-20 20:00' or 'tomorrow at 5pm'.",
        )
        object.__setattr__(self, "raw", raw)

"""
Error taxonomy for the relationship service.

There is exactly one exception type. Every failure carries an ErrorKind so
the HTTP layer (and tests) switch on `error.kind` instead of on subclasses.
"""

from enum import Enum
from typing import Iterable, List, Optional


class ErrorKind(str, Enum):
    """What went wrong, independent of transport."""
    NOT_FOUND = "NOT_FOUND"          # teacher or student does not exist
    CONFLICT = "CONFLICT"            # action violates a state rule
    INVALID_INPUT = "INVALID_INPUT"  # data fails a domain rule
    INTERNAL = "INTERNAL"            # the store failed


class ServiceError(Exception):
    """
    Tagged error raised by the relationship service.

    Attributes:
        kind: ErrorKind of the failure
        message: Human-readable description
        emails: Offending emails (missing teachers, already registered
            students), empty when not applicable
    """

    def __init__(self, kind: ErrorKind, message: str, emails: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.emails: List[str] = list(emails or [])

    @classmethod
    def not_found(cls, message: str, emails: Optional[Iterable[str]] = None) -> "ServiceError":
        return cls(ErrorKind.NOT_FOUND, message, emails)

    @classmethod
    def conflict(cls, message: str, emails: Optional[Iterable[str]] = None) -> "ServiceError":
        return cls(ErrorKind.CONFLICT, message, emails)

    @classmethod
    def invalid_input(cls, message: str) -> "ServiceError":
        return cls(ErrorKind.INVALID_INPUT, message)

    @classmethod
    def internal(cls, message: str = "Internal storage error") -> "ServiceError":
        return cls(ErrorKind.INTERNAL, message)

    def __repr__(self):
        return f"<ServiceError(kind={self.kind.value}, message='{self.message}')>"

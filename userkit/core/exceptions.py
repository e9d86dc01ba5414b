"""Exceptions raised by the credential, token and store layers."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class FieldError:
    """One validation failure on one field."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class UserKitError(Exception):
    """Base exception for all userkit errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class FieldValidationError(UserKitError):
    """Raised when caller input violates field rules. Carries every violation found."""

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        super().__init__(
            "; ".join(str(error) for error in self.errors) or "validation failed",
            details={"errors": [{"field": e.field, "message": e.message} for e in self.errors]},
        )

    @property
    def fields(self) -> List[str]:
        return [error.field for error in self.errors]


class StoreError(UserKitError):
    """Raised when the persistence layer fails."""
    pass


class UniqueConstraintError(StoreError):
    """Raised when a write collides with a unique index."""

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"{field} already exists", details={"field": field})
        self.field = field


class TokenExpiredError(UserKitError):
    """Raised when a token matched a record but its validity window has elapsed."""
    pass


class MissingPasswordError(UserKitError):
    """Raised when authentication is attempted without a password."""
    pass


class HashingError(UserKitError):
    """Raised when the password hashing primitive fails."""
    pass


class EntropyError(UserKitError):
    """Raised when the secure random source is unavailable."""
    pass

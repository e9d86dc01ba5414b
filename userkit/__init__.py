"""User identity records with hashed credentials and expiring security tokens."""

from userkit.core.exceptions import (
    EntropyError,
    FieldError,
    FieldValidationError,
    HashingError,
    MissingPasswordError,
    StoreError,
    TokenExpiredError,
    UniqueConstraintError,
    UserKitError,
)
from userkit.core.security import CredentialManager
from userkit.core.tokens import TokenManager, TokenPurpose
from userkit.db.user_store import UserStore
from userkit.models.user import UserRecord, UserRole
from userkit.schemas.user import PasswordInput, UserRegister, UserResponse
from userkit.services.user_service import UserService, build_user_service, prepare_for_save

__version__ = "0.1.0"

__all__ = [
    "CredentialManager",
    "EntropyError",
    "FieldError",
    "FieldValidationError",
    "HashingError",
    "MissingPasswordError",
    "PasswordInput",
    "StoreError",
    "TokenExpiredError",
    "TokenManager",
    "TokenPurpose",
    "UniqueConstraintError",
    "UserKitError",
    "UserRecord",
    "UserRegister",
    "UserResponse",
    "UserRole",
    "UserService",
    "UserStore",
    "build_user_service",
    "prepare_for_save",
]

"""
User record with role-based access and purpose-tagged security tokens.
Implements a simple admin/user role system.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class UserRole(str, Enum):
    """User role enumeration for RBAC."""

    ADMIN = "admin"
    USER = "user"


class UserRecord(SQLModel, table=True):
    """
    Persisted user identity.

    Plaintext passwords never live here; they travel in a separate
    ``PasswordInput`` and only their hash is stored.

    Attributes:
        id: Primary key, assigned by the store
        email: Unique email address (used for login)
        hashed_password: Bcrypt hash of the user's password
        role: User role (admin or user)
        email_verification_token: Pending email verification token
        email_verification_token_issued_at: When that token was issued
        password_reset_token: Pending password reset token
        password_reset_token_issued_at: When that token was issued
        created_at: Timestamp of account creation
        updated_at: Timestamp of last update
    """

    __tablename__ = "users"  # type: ignore

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    hashed_password: str = Field(default="")
    role: UserRole = Field(default=UserRole.USER)

    email_verification_token: Optional[str] = Field(default=None, index=True, max_length=64)
    email_verification_token_issued_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True)
    )
    password_reset_token: Optional[str] = Field(default=None, index=True, max_length=64)
    password_reset_token_issued_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True)
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True)
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True)
    )

    @property
    def is_new(self) -> bool:
        """True until the store has assigned an id."""
        return self.id is None

    def __repr__(self) -> str:
        return f"<UserRecord id={self.id} email={self.email} role={self.role}>"

"""
User schemas for caller input and output.
Separates transient input (plaintext passwords) from the persisted record.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from userkit.models.user import UserRole


class PasswordInput(BaseModel):
    """
    Write-only password fields carried alongside a record during a save.
    Cleared by the pre-save hook once the password has been hashed.
    """

    password: Optional[str] = None
    password_confirm: Optional[str] = None

    def clear(self) -> None:
        self.password = None
        self.password_confirm = None


class UserRegister(BaseModel):
    """Schema for user registration."""

    # Plain str: syntax is checked by the pre-save hook so that email and
    # password problems are reported together.
    email: str
    password: str
    password_confirm: str
    role: UserRole = UserRole.USER


class UserResponse(BaseModel):
    """
    Schema for exposing a user to callers.
    Excludes sensitive information like hashed_password and tokens.
    """

    id: int
    email: str
    role: UserRole
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

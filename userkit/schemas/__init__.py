"""Pydantic schemas for caller input and output."""

from userkit.schemas.user import PasswordInput, UserRegister, UserResponse

__all__ = ["PasswordInput", "UserRegister", "UserResponse"]

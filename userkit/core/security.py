"""
Password policy, hashing and verification.

Hashes are produced with passlib's ``bcrypt_sha256`` scheme: the password is
run through HMAC-SHA256 before bcrypt, so every character counts (no 72-byte
truncation) and NUL characters are accepted. The encoded output carries the
scheme, cost factor and salt, so verifying a stored hash needs nothing but the
hash itself.
"""

import asyncio
from typing import List, Optional

from passlib.context import CryptContext

from userkit.core.exceptions import FieldError, HashingError, MissingPasswordError

DEFAULT_ROUNDS = 12
DEFAULT_MIN_LENGTH = 6
DEFAULT_MAX_LENGTH = 32


class CredentialManager:
    """
    Turns plaintext passwords into durable credentials and checks them.

    Validation is synchronous and cheap; hashing and verification are
    coroutines that push the bcrypt work onto a worker thread.
    """

    def __init__(
        self,
        rounds: int = DEFAULT_ROUNDS,
        min_length: int = DEFAULT_MIN_LENGTH,
        max_length: int = DEFAULT_MAX_LENGTH,
    ):
        self.rounds = rounds
        self.min_length = min_length
        self.max_length = max_length
        # min_rounds lets needs_rehash() flag hashes made with a weaker cost
        self._context = CryptContext(
            schemes=["bcrypt_sha256"],
            deprecated="auto",
            bcrypt_sha256__default_rounds=rounds,
            bcrypt_sha256__min_rounds=rounds,
        )

    def validate(
        self,
        password: Optional[str],
        password_confirm: Optional[str],
        is_new: bool,
    ) -> List[FieldError]:
        """
        Check password policy without touching the hash function.

        Args:
            password: Plaintext password supplied by the caller
            password_confirm: Repeated password for confirmation
            is_new: Whether the record has never been persisted

        Returns:
            Every violation found, empty when the input is acceptable
        """
        errors: List[FieldError] = []

        if password or password_confirm:
            length = len(password or "")
            if not self.min_length <= length <= self.max_length:
                # Same message for both bounds
                errors.append(
                    FieldError("password", f"must be at least {self.min_length} characters.")
                )
            if password != password_confirm:
                errors.append(FieldError("password_confirm", "must match password."))

        if is_new and not password:
            errors.append(FieldError("password", "required"))

        return errors

    async def hash(self, password: str) -> str:
        """
        Hash a plaintext password with a fresh random salt.

        Args:
            password: Plaintext password, already validated

        Returns:
            Encoded hash string

        Raises:
            HashingError: If the hash primitive fails
        """
        try:
            return await asyncio.to_thread(self._context.hash, password)
        except (ValueError, TypeError, RuntimeError, OSError) as exc:
            raise HashingError(f"password hashing failed: {exc}") from exc

    async def verify(self, password: Optional[str], hashed_password: str) -> bool:
        """
        Check a plaintext password against a stored hash.

        Args:
            password: Plaintext password to check
            hashed_password: Hash produced by ``hash``

        Returns:
            True if the password matches, False otherwise

        Raises:
            MissingPasswordError: If no password was supplied
            HashingError: If the stored hash cannot be read
        """
        if not password:
            raise MissingPasswordError("must send password")
        try:
            return await asyncio.to_thread(self._context.verify, password, hashed_password)
        except (ValueError, TypeError, RuntimeError, OSError) as exc:
            raise HashingError(f"password verification failed: {exc}") from exc

    def needs_rehash(self, hashed_password: str) -> bool:
        """Return True when a stored hash was made with a weaker cost than configured."""
        try:
            return self._context.needs_update(hashed_password)
        except (ValueError, TypeError) as exc:
            raise HashingError(f"unrecognised password hash: {exc}") from exc

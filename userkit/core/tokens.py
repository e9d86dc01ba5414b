"""
Time-limited security tokens for email verification and password reset.

Both purposes share the same mechanics: 32 random bytes, URL-safe base64 with
the padding stripped, stored on the record next to the instant it was issued.
"""

import asyncio
import base64
import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional, Tuple

from userkit.core.exceptions import EntropyError, TokenExpiredError
from userkit.core.logging import get_logger
from userkit.models.user import UserRecord

if TYPE_CHECKING:
    from userkit.db.user_store import UserStore

logger = get_logger(__name__)

TOKEN_BYTES = 32
DEFAULT_EXPIRE_AFTER = timedelta(hours=2)


class TokenPurpose(str, Enum):
    """What a token authorises, and which record fields hold it."""

    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"

    @property
    def token_field(self) -> str:
        return f"{self.value}_token"

    @property
    def issued_at_field(self) -> str:
        return f"{self.value}_token_issued_at"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def encode_token(raw: bytes) -> str:
    """URL-safe base64 without '=' padding."""
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


class TokenManager:
    """Issues and validates tokens of a single purpose."""

    def __init__(
        self,
        store: "UserStore",
        purpose: TokenPurpose,
        expire_after: timedelta = DEFAULT_EXPIRE_AFTER,
        clock: Callable[[], datetime] = utcnow,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
    ):
        self.store = store
        self.purpose = purpose
        self.expire_after = expire_after
        self._clock = clock
        self._random_bytes = random_bytes

    async def issue(self, record: UserRecord) -> Tuple[str, datetime]:
        """
        Generate a fresh token for ``record`` and persist it.

        Any token of the same purpose still pending on the record is replaced.

        Args:
            record: Persisted user record

        Returns:
            Tuple of (token, issued_at)

        Raises:
            EntropyError: If the secure random source is unavailable
        """
        try:
            raw = await asyncio.to_thread(self._random_bytes, TOKEN_BYTES)
        except (OSError, NotImplementedError) as exc:
            raise EntropyError(f"secure random source unavailable: {exc}") from exc

        token = encode_token(raw)
        issued_at = self._clock()
        await self.store.save(
            record,
            **{self.purpose.token_field: token, self.purpose.issued_at_field: issued_at},
        )
        logger.info(f"Issued {self.purpose.value} token for user {record.id}")
        return token, issued_at

    async def find_valid(self, token: Optional[str]) -> Optional[UserRecord]:
        """
        Look up the record holding ``token``.

        Args:
            token: Token value as handed to the user

        Returns:
            Matching record, or None if no record holds the token

        Raises:
            TokenExpiredError: If the token matched but its window has elapsed
        """
        if not token:
            return None

        record = await self.store.find_one(**{self.purpose.token_field: token})
        if record is None:
            return None

        if self.is_expired(getattr(record, self.purpose.issued_at_field)):
            raise TokenExpiredError(
                "token expired",
                details={"purpose": self.purpose.value},
            )
        return record

    async def revoke(self, record: UserRecord) -> UserRecord:
        """Clear the token and its issue time together, then persist."""
        saved = await self.store.save(
            record,
            **{self.purpose.token_field: None, self.purpose.issued_at_field: None},
        )
        logger.info(f"Revoked {self.purpose.value} token for user {record.id}")
        return saved

    def is_expired(self, issued_at: Optional[datetime]) -> bool:
        """A token without an issue time is treated as expired."""
        if issued_at is None:
            return True
        # SQLite hands timestamps back without tzinfo; they were written as UTC
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        return self._clock() - issued_at >= self.expire_after

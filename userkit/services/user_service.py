"""
User service layer implementing the registration, credential and token flows.
Also holds the pre-save hook that every write through ``UserStore`` passes.
"""

from datetime import datetime, timedelta
from functools import partial
from typing import Callable, Dict, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.ext.asyncio import AsyncEngine

from userkit.core.config import Settings, settings as default_settings
from userkit.core.exceptions import FieldError, FieldValidationError, MissingPasswordError
from userkit.core.logging import get_logger
from userkit.core.security import CredentialManager
from userkit.core.tokens import TokenManager, TokenPurpose, utcnow
from userkit.db.user_store import UserStore
from userkit.models.user import UserRecord, UserRole
from userkit.schemas.user import PasswordInput, UserRegister

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    """Return the canonical form of a valid address, or the stripped input."""
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError:
        return email.strip()


def _check_email(record: UserRecord) -> List[FieldError]:
    if not record.email:
        return [FieldError("email", "required")]
    try:
        result = validate_email(record.email, check_deliverability=False)
    except EmailNotValidError:
        return [FieldError("email", "invalid")]
    record.email = result.normalized
    return []


def _check_role(record: UserRecord) -> List[FieldError]:
    try:
        record.role = UserRole(record.role)
    except ValueError:
        return [FieldError("role", "invalid")]
    return []


def _check_token_pairs(record: UserRecord) -> List[FieldError]:
    errors = []
    for purpose in TokenPurpose:
        token = getattr(record, purpose.token_field)
        issued_at = getattr(record, purpose.issued_at_field)
        if (token is None) != (issued_at is None):
            errors.append(
                FieldError(purpose.token_field, "token and issue time must be set together")
            )
    return errors


async def prepare_for_save(
    record: UserRecord,
    password_input: Optional[PasswordInput],
    *,
    credentials: CredentialManager,
    is_new: bool,
) -> None:
    """
    Validate a record and hash its new password, if any, before it is written.

    Field errors for email, role, password and tokens are gathered in one pass
    and raised together; hashing only happens once they all pass.

    Args:
        record: Record about to be written
        password_input: Transient password fields, or None to keep the password
        credentials: Manager used to validate and hash the password
        is_new: Whether the record has never been persisted

    Raises:
        FieldValidationError: If any field is invalid
        HashingError: If hashing fails
    """
    password_input = password_input or PasswordInput()

    errors = _check_email(record)
    errors += _check_role(record)
    errors += credentials.validate(password_input.password, password_input.password_confirm, is_new)
    errors += _check_token_pairs(record)
    if errors:
        raise FieldValidationError(errors)

    if password_input.password:
        record.hashed_password = await credentials.hash(password_input.password)
        password_input.clear()

    if not record.hashed_password:
        raise FieldValidationError([FieldError("password", "required")])


class UserService:
    """Service class for user-related operations."""

    def __init__(
        self,
        store: UserStore,
        credentials: CredentialManager,
        token_managers: Optional[Dict[TokenPurpose, TokenManager]] = None,
    ):
        self.store = store
        self.credentials = credentials
        self.token_managers = token_managers or {}

    async def register(self, user_in: UserRegister) -> UserRecord:
        """
        Create a new user with a hashed password.

        Args:
            user_in: Registration data

        Returns:
            Created user record

        Raises:
            FieldValidationError: If email or password are invalid
            UniqueConstraintError: If the email is already registered
        """
        record = UserRecord(email=user_in.email, role=user_in.role)
        password_input = PasswordInput(
            password=user_in.password,
            password_confirm=user_in.password_confirm,
        )
        record = await self.store.save(record, password_input)
        logger.info(f"New user registered (ID: {record.id})")
        return record

    async def get_by_id(self, user_id: int) -> Optional[UserRecord]:
        """Retrieve a user by ID."""
        return await self.store.find_one(id=user_id)

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        """Retrieve a user by email address."""
        return await self.store.find_one(email=normalize_email(email))

    async def verify_password(self, record: UserRecord, password: Optional[str]) -> bool:
        """
        Check a password against a user's stored hash.

        Raises:
            MissingPasswordError: If no password was supplied
        """
        return await self.credentials.verify(password, record.hashed_password)

    async def authenticate(self, email: str, password: Optional[str]) -> Optional[UserRecord]:
        """
        Authenticate a user by email and password.

        Args:
            email: User's email
            password: Plain text password

        Returns:
            User if authentication successful, None otherwise

        Raises:
            MissingPasswordError: If no password was supplied
        """
        if not password:
            raise MissingPasswordError("must send password")
        record = await self.find_by_email(email)
        if record is None:
            return None
        if not await self.verify_password(record, password):
            return None
        return record

    async def change_password(
        self,
        record: UserRecord,
        password: str,
        password_confirm: str,
    ) -> UserRecord:
        """Replace a user's password after validating and confirming it."""
        password_input = PasswordInput(password=password, password_confirm=password_confirm)
        record = await self.store.save(record, password_input)
        logger.info(f"Password changed for user {record.id}")
        return record

    async def change_email(self, record: UserRecord, email: str) -> UserRecord:
        """Move a user to a new email address, subject to the same validation."""
        record = await self.store.save(record, email=email)
        logger.info(f"Email changed for user {record.id}")
        return record

    async def issue_token(self, record: UserRecord, purpose: TokenPurpose) -> Tuple[str, datetime]:
        """Issue a token of ``purpose`` for the user, replacing any pending one."""
        return await self._token_manager(purpose).issue(record)

    async def find_by_token(self, token: Optional[str], purpose: TokenPurpose) -> Optional[UserRecord]:
        """
        Find the user holding a still-valid token.

        Raises:
            TokenExpiredError: If the token matched but has expired
        """
        return await self._token_manager(purpose).find_valid(token)

    async def revoke_token(self, record: UserRecord, purpose: TokenPurpose) -> UserRecord:
        """Clear a pending token so it can no longer be used."""
        return await self._token_manager(purpose).revoke(record)

    async def reset_password(
        self,
        token: Optional[str],
        password: str,
        password_confirm: str,
    ) -> Optional[UserRecord]:
        """
        Set a new password for the holder of a valid reset token.

        The token is cleared in the same write as the new hash.

        Returns:
            Updated user, or None if no user holds the token

        Raises:
            TokenExpiredError: If the token has expired
            FieldValidationError: If the new password is invalid
        """
        purpose = TokenPurpose.PASSWORD_RESET
        record = await self.find_by_token(token, purpose)
        if record is None:
            return None

        password_input = PasswordInput(password=password, password_confirm=password_confirm)
        record = await self.store.save(
            record,
            password_input,
            **{purpose.token_field: None, purpose.issued_at_field: None},
        )
        logger.info(f"Password reset for user {record.id}")
        return record

    @staticmethod
    def is_admin(record: UserRecord) -> bool:
        """Check if a user has admin privileges."""
        return record.role == UserRole.ADMIN

    def _token_manager(self, purpose: TokenPurpose) -> TokenManager:
        try:
            return self.token_managers[purpose]
        except KeyError:
            raise ValueError(f"no token manager configured for {purpose.value}") from None


def build_user_service(
    engine: AsyncEngine,
    config: Optional[Settings] = None,
    clock: Callable[[], datetime] = utcnow,
) -> UserService:
    """
    Wire a store, credential manager and both token managers from configuration.

    Args:
        engine: Async database engine
        config: Settings to read cost factor, password bounds and token window from
        clock: Time source for token issue and expiry

    Returns:
        Ready-to-use user service
    """
    config = config or default_settings
    credentials = CredentialManager(
        rounds=config.PASSWORD_HASH_ROUNDS,
        min_length=config.PASSWORD_MIN_LENGTH,
        max_length=config.PASSWORD_MAX_LENGTH,
    )
    store = UserStore(engine, pre_save=partial(prepare_for_save, credentials=credentials))
    expire_after = timedelta(hours=config.TOKEN_EXPIRE_HOURS)
    token_managers = {
        purpose: TokenManager(store, purpose, expire_after=expire_after, clock=clock)
        for purpose in TokenPurpose
    }
    return UserService(store, credentials, token_managers)

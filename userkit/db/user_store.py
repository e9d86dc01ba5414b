"""
Persistence for user records.

Every operation opens its own session and commits a single record, so each
write is independently atomic. The unique index on ``email`` is the only
arbiter of duplicate registrations.
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from userkit.core.exceptions import StoreError, UniqueConstraintError, UserKitError
from userkit.core.logging import get_logger
from userkit.db.session import session_factory
from userkit.models.user import UserRecord
from userkit.schemas.user import PasswordInput

logger = get_logger(__name__)

# (record, password_input, is_new) -> None, raising to abort the save
PreSaveHook = Callable[..., Awaitable[None]]


class UserStore:
    """Async repository over the ``users`` table."""

    def __init__(self, engine: AsyncEngine, pre_save: Optional[PreSaveHook] = None):
        self._sessions = session_factory(engine)
        self._pre_save = pre_save

    async def insert(self, record: UserRecord) -> UserRecord:
        """
        Write a record as-is, without running the pre-save hook.

        The record is merged into the session rather than added, so the caller's
        instance stays detached and readable even when the write fails. Stored
        values are copied back onto it only after a successful commit.

        Args:
            record: Record to persist

        Returns:
            The persisted record, refreshed from the database

        Raises:
            UniqueConstraintError: If the email is already registered
            StoreError: On any other database failure
        """
        async with self._sessions() as session:
            try:
                persistent = await session.merge(record)
            except SQLAlchemyError as exc:
                raise StoreError(f"write failed: {exc}") from exc
            await self._commit(session)
            await session.refresh(persistent)
            self._assign(record, self._column_values(persistent))
        return record

    async def find_one(self, **criteria: Any) -> Optional[UserRecord]:
        """
        Find the first record whose fields equal the given values.

        Args:
            **criteria: Field name to value

        Returns:
            Matching record, or None when nothing matches
        """
        statement = self._select(criteria)
        try:
            async with self._sessions() as session:
                result = await session.exec(statement)
                return result.first()
        except SQLAlchemyError as exc:
            raise StoreError(f"lookup failed: {exc}") from exc

    async def save(
        self,
        record: UserRecord,
        password_input: Optional[PasswordInput] = None,
        **changes: Any,
    ) -> UserRecord:
        """
        Apply ``changes``, run the pre-save hook, then insert or update the record.

        If anything fails the record is put back exactly as it was passed in.

        Args:
            record: New or previously loaded record
            password_input: Transient password fields, if the password changes
            **changes: Field values to set on the record as part of this write

        Returns:
            The persisted record

        Raises:
            FieldValidationError: If the hook rejects the record
            UniqueConstraintError: If the email is already registered
            StoreError: On any other database failure
        """
        unknown = set(changes) - set(self._columns())
        if unknown:
            raise StoreError(f"unknown field: {', '.join(sorted(unknown))}")

        is_new = record.is_new
        snapshot = self._column_values(record)
        try:
            self._assign(record, changes)
            if self._pre_save is not None:
                await self._pre_save(record, password_input, is_new=is_new)
            record.updated_at = datetime.now(timezone.utc)
            saved = await self.insert(record)
        except UserKitError:
            self._assign(record, snapshot)
            raise

        logger.debug(f"{'Inserted' if is_new else 'Updated'} user record {saved.id}")
        return saved

    async def remove_all(self, **criteria: Any) -> int:
        """
        Delete every record matching the criteria (all records when none given).

        Returns:
            Number of records deleted
        """
        statement = self._select(criteria)
        async with self._sessions() as session:
            try:
                result = await session.exec(statement)
                records = result.all()
                for record in records:
                    await session.delete(record)
            except SQLAlchemyError as exc:
                raise StoreError(f"delete failed: {exc}") from exc
            await self._commit(session)
        return len(records)

    @staticmethod
    def _columns() -> List[str]:
        return list(UserRecord.__table__.columns.keys())  # type: ignore[attr-defined]

    @classmethod
    def _column_values(cls, record: UserRecord) -> Dict[str, Any]:
        return {name: getattr(record, name) for name in cls._columns()}

    @staticmethod
    def _assign(record: UserRecord, values: Dict[str, Any]) -> None:
        for name, value in values.items():
            setattr(record, name, value)

    @classmethod
    def _select(cls, criteria: dict):
        statement = select(UserRecord)
        for name, value in criteria.items():
            if name not in cls._columns():
                raise StoreError(f"unknown field: {name}")
            statement = statement.where(getattr(UserRecord, name) == value)
        return statement

    @staticmethod
    async def _commit(session: AsyncSession) -> None:
        try:
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            message = str(exc.orig).lower()
            if "unique" in message or "duplicate" in message:
                raise UniqueConstraintError("email") from exc
            raise StoreError(f"integrity error: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            await session.rollback()
            raise StoreError(f"commit failed: {exc}") from exc

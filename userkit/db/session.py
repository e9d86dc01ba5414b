"""
Database engine and session management using SQLModel's asyncio support.
Provides the engine factory, table creation and session factory used by the store.
"""

from typing import Any, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from userkit.core.config import Settings


def create_engine_from_settings(config: Settings) -> AsyncEngine:
    """
    Create an async database engine with settings appropriate to the backend.

    Args:
        config: Application settings

    Returns:
        Async SQLAlchemy engine
    """
    kwargs: Dict[str, Any] = {"echo": config.DEBUG}
    if not config.is_sqlite:
        # pool_pre_ping ensures connections are alive before using them
        kwargs.update(pool_pre_ping=True, pool_size=5, max_overflow=10)

    engine = create_async_engine(config.DATABASE_URL, **kwargs)
    if config.is_sqlite:
        use_immediate_transactions(engine)
    return engine


def use_immediate_transactions(engine: AsyncEngine) -> None:
    """
    Make SQLite take the write lock when a transaction starts.

    A second writer then waits for the first to commit, and a duplicate insert
    fails on the unique index rather than with "database is locked".
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


async def init_db(engine: AsyncEngine) -> None:
    """Create tables and indexes for every registered model."""
    # Imported for its side effect of registering the table
    from userkit.models.user import UserRecord  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """
    Build a factory of async sessions bound to ``engine``.
    Objects stay readable after commit so records can be returned to callers.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

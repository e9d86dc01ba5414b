"""
Pytest configuration and fixtures.
Provides a test database, wired services, a controllable clock and common users.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from userkit.core.config import Settings
from userkit.core.security import CredentialManager
from userkit.db.session import create_engine_from_settings, init_db
from userkit.db.user_store import UserStore
from userkit.models.user import UserRecord, UserRole
from userkit.schemas.user import UserRegister
from userkit.services.user_service import UserService, build_user_service

TEST_PASSWORD = "testpassword123"
ADMIN_PASSWORD = "adminpassword123"


class FakeClock:
    """Clock whose time only moves when a test advances it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture(name="test_settings")
def test_settings_fixture(tmp_path: Path) -> Settings:
    """
    Settings for tests.
    Uses a file-backed SQLite database so concurrent sessions get their own connections,
    and the minimum bcrypt cost so hashing stays fast.
    """
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        PASSWORD_HASH_ROUNDS=4,
    )


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest_asyncio.fixture(name="engine")
async def engine_fixture(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create the schema in a fresh database for each test."""
    engine = create_engine_from_settings(test_settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture(name="user_service")
def user_service_fixture(engine: AsyncEngine, test_settings: Settings, clock: FakeClock) -> UserService:
    return build_user_service(engine, test_settings, clock=clock)


@pytest.fixture(name="store")
def store_fixture(user_service: UserService) -> UserStore:
    return user_service.store


@pytest.fixture(name="credentials")
def credentials_fixture() -> CredentialManager:
    return CredentialManager(rounds=4)


@pytest_asyncio.fixture(name="test_user")
async def test_user_fixture(user_service: UserService) -> UserRecord:
    """
    Create a test user.
    """
    user_in = UserRegister(
        email="test@example.com",
        password=TEST_PASSWORD,
        password_confirm=TEST_PASSWORD,
    )
    return await user_service.register(user_in)


@pytest_asyncio.fixture(name="test_admin")
async def test_admin_fixture(user_service: UserService) -> UserRecord:
    """
    Create a test admin user.
    """
    user_in = UserRegister(
        email="admin@example.com",
        password=ADMIN_PASSWORD,
        password_confirm=ADMIN_PASSWORD,
        role=UserRole.ADMIN,
    )
    return await user_service.register(user_in)

"""Shared test fixtures for async database, sessions, users, and auth tokens."""

import uuid
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from manacity_api.core.config import Settings
from manacity_api.core.security import create_access_token, hash_password
from manacity_api.models.base import Base
from manacity_api.models.user import User

TEST_SECRET = "test-secret-key-not-for-production"


def _enable_sqlite_transactions(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN on SQLite so SAVEPOINTs nest inside a real transaction."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key=TEST_SECRET,
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
        jwt_refresh_token_expire_days=7,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine with the full schema."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)
    _enable_sqlite_transactions(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Per-test async session."""
    async with session_factory() as session:
        yield session


async def _add_user(session: AsyncSession, username: str, role: str) -> User:
    user = User(
        id=uuid.uuid4(),
        username=username,
        email=f"{username}@manacity.example.com",
        hashed_password=hash_password("testpassword123"),
        role=role,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
async def sample_user(async_session: AsyncSession) -> User:
    """A customer who owns addresses in the tests."""
    return await _add_user(async_session, "testcustomer", "customer")


@pytest.fixture
async def other_user(async_session: AsyncSession) -> User:
    """A second customer, for ownership isolation checks."""
    return await _add_user(async_session, "othercustomer", "customer")


@pytest.fixture
def customer_token(settings: Settings) -> str:
    """JWT access token for the sample customer."""
    return create_access_token(
        subject="testcustomer",
        role="customer",
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )

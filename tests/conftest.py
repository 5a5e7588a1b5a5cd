"""
Pytest fixtures for Collabhub tests.

Every test gets its own file-backed SQLite database so that independent
sessions (request session, post-commit sessions, concurrent writers) all see
the same data.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable, Dict

import pytest
import pytest_asyncio
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from collabhub.config import get_settings
from collabhub.kernel.membership import MembershipRegistry, ProjectLocks
from collabhub.kernel.models import Base
from collabhub.kernel.models.user import User


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a test database engine with the schema in place."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'collabhub-test.db'}",
        echo=False,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory shared by the code under test and the assertions."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def locks() -> ProjectLocks:
    return ProjectLocks()


@pytest.fixture
def registry(db_session: AsyncSession, locks: ProjectLocks) -> MembershipRegistry:
    return MembershipRegistry(db_session, locks)


async def _make_user(session: AsyncSession, name: str) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{name.lower()}@example.com",
        name=name,
    )
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "Olivia")


@pytest_asyncio.fixture
async def alice(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "Alice")


@pytest_asyncio.fixture
async def bob(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "Bob")


@pytest_asyncio.fixture
async def carol(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "Carol")


def make_access_token(user: User, expires_in: timedelta = timedelta(minutes=30)) -> str:
    """Mint a token the way the identity provider does."""
    settings = get_settings()
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "type": "access",
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    """Build authentication headers for a user."""

    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_access_token(user)}"}

    return _headers

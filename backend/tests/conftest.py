"""
Pytest fixtures for test database, client, and authentication.

Every test gets its own SQLite database file, so the booking store runs its
real conditional writes with no shared state between tests. Redis is
disabled; the class listing is served uncached.
"""

import os

os.environ["REDIS_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"

from datetime import timedelta
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from class_booking.main import app
from class_booking.db.base import Base
from class_booking.db.session import (
    create_booking_session_factory,
    create_engine_for,
    create_session_factory,
    get_db,
)
from class_booking.models.fitness_class import FitnessClass
from class_booking.models.user import User, UserRole
from class_booking.services.capacity_guard import CapacityGuard
from class_booking.services.guard_factory import build_capacity_guard, get_capacity_guard

from factories import headers_for, make_class, make_user


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def guard(engine: AsyncEngine, session_factory) -> CapacityGuard:
    """Capacity guard over the test database, wired like the application's."""
    return build_capacity_guard(session_factory, create_booking_session_factory(engine))


@pytest_asyncio.fixture
async def client(session_factory, guard: CapacityGuard) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the DB session and capacity guard bound to the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_capacity_guard] = lambda: guard

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "test@example.com", first_name="Jamie", last_name="Doe")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin@example.com", role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return headers_for(test_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest_asyncio.fixture
async def test_class(db_session: AsyncSession, admin_user: User) -> FitnessClass:
    """An upcoming class with 10 spots."""
    return await make_class(db_session, admin_user)


@pytest_asyncio.fixture
async def small_class(db_session: AsyncSession, admin_user: User) -> FitnessClass:
    """An upcoming class with a single spot."""
    return await make_class(db_session, admin_user, capacity=1, title="Private Session")


@pytest_asyncio.fixture
async def past_class(db_session: AsyncSession, admin_user: User) -> FitnessClass:
    """A class that started an hour ago."""
    return await make_class(db_session, admin_user, starts_in=-timedelta(hours=1), title="Early Spin")

"""
Async engine and session factories.

PostgreSQL (asyncpg) runs with a pooled engine at READ COMMITTED; booking
transactions are serialized per class by the class row lock the booking
store takes before counting.

SQLite (aiosqlite) is supported for development and tests. The database runs
in WAL mode so readers never block the writer, pysqlite's own transaction
handling is disabled, and the BEGIN statement is emitted by us: deferred by
default, IMMEDIATE for sessions from `create_booking_session_factory`, so a
booking transaction takes the write lock before it reads what it is about to
decide on.
"""

from typing import AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from class_booking.core.config import get_settings

settings = get_settings()

SQLITE_BEGIN_OPTION = "sqlite_begin"


def create_engine_for(url: str, echo: bool = False, busy_timeout: Optional[float] = None) -> AsyncEngine:
    """
    Build an async engine with backend-appropriate pooling and transaction setup.
    busy_timeout (seconds) applies to SQLite only and defaults to SQLITE_BUSY_TIMEOUT.
    """
    if make_url(url).get_backend_name() != "sqlite":
        return create_async_engine(
            url,
            echo=echo,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,
        )

    engine = create_async_engine(
        url,
        echo=echo,
        connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT if busy_timeout is None else busy_timeout},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        mode = conn.get_execution_options().get(SQLITE_BEGIN_OPTION, "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def create_booking_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions for booking store transactions. No-op outside SQLite."""
    return create_session_factory(engine.execution_options(**{SQLITE_BEGIN_OPTION: "IMMEDIATE"}))


engine = create_engine_for(settings.DATABASE_URL, echo=settings.DEBUG)
AsyncSessionLocal = create_session_factory(engine)
BookingSessionLocal = create_booking_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Services commit their own writes."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

"""
Async engine and session factory.

PostgreSQL is the production store: row locks come from SELECT ... FOR UPDATE
and the lock wait is bounded per transaction with SET LOCAL lock_timeout.

SQLite (local runs and the test suite) has no row locks. The database runs
in WAL mode so readers never wait on writers. Sessions that will write call
`begin_write` first, which opens their transaction with BEGIN IMMEDIATE:
writers serialize on the database lock, and the driver's busy timeout plays
the role of the lock-acquisition timeout. Read sessions use a plain BEGIN.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ticketpool.core.config import get_settings

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None

WRITE_TRANSACTION = {"sqlite_begin_immediate": True}


def _configure_sqlite(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Take over transaction control from the driver.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get("sqlite_begin_immediate"):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def build_engine(url: Optional[str] = None) -> AsyncEngine:
    settings = get_settings()
    url = url or settings.DATABASE_URL

    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=settings.DEBUG,
            connect_args={"timeout": settings.ALLOCATION_LOCK_TIMEOUT_MS / 1000},
        )
        _configure_sqlite(engine)
        return engine

    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency: the factory components open per-request transactions from."""
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: a read session for facade queries."""
    async with session_factory() as session:
        yield session


async def begin_write(session: AsyncSession) -> None:
    """
    Open the session's transaction as a writer. Must run before the first
    statement; on SQLite it takes the database write lock up front.
    """
    await session.connection(execution_options=WRITE_TRANSACTION)


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None

"""
Database Infrastructure
=======================

Engine and session lifecycle for the ticket store.

SQLAlchemy 2.0 async. The default URL is a local SQLite file through
aiosqlite; any other async driver URL works unchanged.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from triagedesk.config import settings


class Base(DeclarativeBase):
    """Declarative base shared by the ticket tables."""
    pass


_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores REFERENCES clauses unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine() -> AsyncEngine:
    """
    Raises:
        RuntimeError: If init_database() has not run
    """
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_database() first.")
    return _engine


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the engine and session maker; called once at startup.

    Args:
        database_url: Overrides settings.database_url (tests point this at a temp file)
    """
    global _engine, _session_maker

    url = database_url or settings.database_url

    if url.startswith("sqlite"):
        # One file, one writer: no pooled connections held open
        _engine = create_async_engine(url, echo=settings.debug, poolclass=NullPool)
        event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    else:
        _engine = create_async_engine(
            url,
            echo=settings.debug,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
        )

    _session_maker = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,  # domain objects are built after commit
        autoflush=False,
    )
    return _engine


async def close_database() -> None:
    """Dispose of the engine on shutdown."""
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for scripts and tests.

    Usage:
        async with get_session_context() as session:
            store = SQLAlchemyTicketStore(session)
            ticket = await store.get_ticket(1)

    Nothing is committed here; the store commits each of its own operations.
    """
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    async with _session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with get_session_context() as session:
        yield session


async def create_tables() -> None:
    """
    Create the ticket tables if they are missing.

    There are no migrations; the schema is created at startup.
    """
    # Registers TicketModel and TicketMessageModel on Base.metadata
    import triagedesk.tickets.infrastructure.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

"""
Database Infrastructure
=======================

Manages database connections, session lifecycle, and engine configuration.

Uses SQLAlchemy 2.0 async sessions (asyncpg for PostgreSQL, aiosqlite for
SQLite). The engine lives on an explicitly constructed ``Database`` handle
that the application stores on ``app.state``; nothing here is a process-wide
singleton.
"""

import functools
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional, TypeVar

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from supportdesk.config import Settings
from supportdesk.core import RepositoryException

T = TypeVar("T")


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    SQLAlchemy 2.0 style using DeclarativeBase.
    All models inherit from this class.
    """
    pass


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy emit BEGIN itself so SAVEPOINTs work on SQLite.

    The workflows run best-effort steps inside ``begin_nested()``.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class Database:
    """
    Owns the async engine and session factory for one application.

    Usage:
        database = Database(settings.database_url)
        async with database.session() as session:
            ...
        await database.close()
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ):
        self.url = url
        is_sqlite = url.startswith("sqlite")

        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if not is_sqlite:
            engine_kwargs.update(pool_size=pool_size, max_overflow=max_overflow)

        self._engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        if is_sqlite:
            _enable_sqlite_savepoints(self._engine)

        self._session_maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Prevent lazy loading after commit
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build the handle described by application settings."""
        return cls(
            settings.database_url,
            echo=settings.debug,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Transactional session scope.

        Commits when the block exits cleanly, rolls back on any exception.
        """
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """
        Create all database tables.

        This should only be used for development/testing.
        Production should use migrations (Alembic).
        """
        # Importing the model modules registers their tables on Base.metadata
        from supportdesk.shared.infrastructure import read_models  # noqa: F401
        from supportdesk.tickets.infrastructure import models as ticket_models  # noqa: F401
        from supportdesk.triage.infrastructure import models as triage_models  # noqa: F401
        from supportdesk.complaints.infrastructure import models as complaint_models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Connectivity check for the health endpoint."""
        from sqlalchemy import text

        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def close(self) -> None:
        """Dispose of pooled connections."""
        await self._engine.dispose()


def repository_operation(operation: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Re-raise driver and ORM failures of a repository method as ``RepositoryException``.

    Usage:
        @repository_operation("create ticket")
        async def create(self, ...):
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                raise RepositoryException(
                    f"Failed to {operation}",
                    {"operation": operation, "error_type": type(e).__name__}
                ) from e

        return wrapper

    return decorator


def get_database(request: Request) -> Database:
    """Return the handle the application was started with."""
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database not initialized. Set app.state.database at startup.")
    return database


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Async generator for request-scoped sessions.

    For use with FastAPI's Depends() - FastAPI handles the lifecycle.

    Usage in FastAPI:
        @router.get("/tickets")
        async def list_tickets(session: AsyncSession = Depends(get_session)):
            ...
    """
    async with get_database(request).session() as session:
        yield session

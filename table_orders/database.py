"""
Database Connection Module
Owns the SQLAlchemy async engine and session factory for one application.

The handle is created explicitly from Settings and passed around: FastAPI
keeps it on app.state, scripts and tests build their own.
"""

import logging
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from table_orders.core.config import Settings

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


def _on_sqlite_connect(dbapi_connection, connection_record) -> None:
    # Take over BEGIN from the driver, see _on_sqlite_begin
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(conn) -> None:
    # SQLite ignores SELECT ... FOR UPDATE. Taking the write lock when the
    # transaction starts serialises units of work instead.
    conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """
    Engine + session factory pair.

    Example:
        >>> database = Database(settings)
        >>> await database.init_models()
        >>> async with database.session() as session:
        ...     ...
        >>> await database.dispose()
    """

    def __init__(self, settings: Settings):
        engine_kwargs = {"echo": settings.database_echo}
        if not settings.uses_sqlite:
            engine_kwargs.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_pre_ping=True,
            )

        self.engine = create_async_engine(settings.database_url, **engine_kwargs)

        if settings.uses_sqlite:
            event.listen(self.engine.sync_engine, "connect", _on_sqlite_connect)
            event.listen(self.engine.sync_engine, "begin", _on_sqlite_begin)

        # Objects remain accessible after commit
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        """Open a new session (use as an async context manager)."""
        return self.session_factory()

    async def init_models(self) -> None:
        """
        Create all tables in database.
        Called once at application startup.
        """
        # Import so every model is registered on Base.metadata
        from table_orders import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Database tables created successfully!")

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session from the application's Database and ensures cleanup.
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
        finally:
            await session.close()

"""
Async PostgreSQL access for the registration store (SQLAlchemy 2.0 async engine, asyncpg driver).
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shared.config import Settings, get_settings
from shared.models.orm import Base
from shared.utils.logging import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """Owns the engine and hands out read or transactional sessions."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    async def connect(self) -> None:
        s = self._settings
        self._engine = create_async_engine(
            s.database_url_str,
            pool_size=s.db_pool_min,
            max_overflow=max(0, s.db_pool_max - s.db_pool_min),
            pool_pre_ping=True,
            pool_recycle=300,
            echo=s.debug,
            connect_args={"timeout": s.db_command_timeout, "command_timeout": s.db_command_timeout},
        )
        self._sessions = async_sessionmaker(bind=self._engine, expire_on_commit=False)
        logger.info("database_connected", url=s.database_url_safe_log)

    async def disconnect(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessions = None
            logger.info("database_disconnected")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("DatabaseManager not connected. Call connect() first.")
        return self._engine

    async def ping(self) -> bool:
        async with self.read_session() as session:
            await session.execute(text("SELECT 1"))
        return True

    async def create_schema(self) -> list[str]:
        """Create any missing ORM tables and indexes. Returns the table names covered."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        tables = sorted(Base.metadata.tables)
        logger.info("database_schema_ready", tables=tables)
        return tables

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            raise RuntimeError("DatabaseManager not connected. Call connect() first.")
        return self._sessions

    @asynccontextmanager
    async def read_session(self) -> AsyncIterator[AsyncSession]:
        """Session for lookups; never committed."""
        async with self._factory()() as session:
            yield session

    @asynccontextmanager
    async def write_session(self) -> AsyncIterator[AsyncSession]:
        """Session that commits on success and rolls back on any error."""
        async with self._factory()() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

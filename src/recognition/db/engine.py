"""Engine and session handling for the rule and role tables.

Production deployments point ``RECOGNITION_DB_URL`` at Postgres (asyncpg).
Tests and single-process tools use ``sqlite+aiosqlite:///:memory:``; an
in-memory database lives only as long as its connection, so that case is
pinned to a single shared connection.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from recognition.core.config import DatabaseConfig
from recognition.db.base import Base
from recognition.db.models import RecognitionRuleRow, RoleRow

logger = logging.getLogger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.endswith("://"))


class DatabaseManager:
    """Owns the rule store's engine and hands out sessions.

    Usage::

        db = DatabaseManager.from_config(settings.database)
        await db.create_tables()
        async with db.session() as session:
            ...
        await db.close()
    """

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 5,
    ) -> None:
        kwargs: dict[str, Any] = {"echo": echo}
        if _is_memory_sqlite(database_url):
            kwargs["poolclass"] = StaticPool
        elif not database_url.startswith("sqlite"):
            kwargs["pool_size"] = pool_size
            kwargs["pool_pre_ping"] = True
        self._engine: AsyncEngine = create_async_engine(database_url, **kwargs)
        self._session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
        )

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> DatabaseManager:
        if not config.url:
            raise ValueError("Database URL is not configured (RECOGNITION_DB_URL)")
        return cls(config.url, echo=config.echo, pool_size=config.pool_size)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    def session(self) -> AsyncSession:
        return self._session_factory()

    async def create_tables(self) -> None:
        """Create the roles and recognition rules tables if they are missing."""
        async with self._engine.begin() as conn:
            await conn.run_sync(
                Base.metadata.create_all,
                tables=[RoleRow.__table__, RecognitionRuleRow.__table__],
            )
        logger.info("Ensured recognition tables on %s", self.dialect)

    async def ping(self) -> bool:
        """True if a trivial query succeeds. Used by the health endpoint."""
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Rule database unreachable: %s", exc)
            return False
        return True

    async def close(self) -> None:
        await self._engine.dispose()

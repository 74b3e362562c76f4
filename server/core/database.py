"""Async database service with SQLModel and SQLAlchemy 2.0."""

import random
from datetime import datetime, timezone
from typing import Dict, List, Type
from contextlib import asynccontextmanager

from sqlmodel import SQLModel, select
from sqlalchemy import func, inspect, text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from core.config import Settings
from core.logging import get_logger
# Imported so every table is registered on SQLModel.metadata before create_all
from models.auth import User, Institute  # noqa: F401
from models.cache import CacheEntry
from models.health import HealthProbe
from models.preferences import UserPreferences
from models.session import UserSession, SessionActivity  # noqa: F401

logger = get_logger(__name__)


class Database:
    """Async database service with SQLModel."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = None
        self.async_session = None

    async def startup(self):
        """Initialize database connection and create tables."""
        try:
            engine_kwargs = {"echo": self.settings.database_echo}
            if not self.settings.is_sqlite:
                engine_kwargs["pool_size"] = self.settings.database_pool_size
                engine_kwargs["max_overflow"] = self.settings.database_max_overflow

            self.engine = create_async_engine(self.settings.database_url, **engine_kwargs)

            self.async_session = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

            logger.info("Database initialized successfully",
                        database=self.settings.database_name)

        except Exception as e:
            logger.error("Database startup failed", error=str(e))
            raise

    async def shutdown(self):
        """Close database connections."""
        if self.engine:
            await self.engine.dispose()
            logger.info("Database connections closed")

    @asynccontextmanager
    async def get_session(self):
        """Get async database session."""
        if not self.async_session:
            raise RuntimeError("Database not initialized")

        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    # ============================================================================
    # Health helpers
    # ============================================================================

    async def check_connection(self) -> bool:
        """Ping the database. Never raises."""
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database connection check failed", error=str(e))
            return False

    async def table_names(self) -> List[str]:
        async with self.engine.connect() as conn:
            return await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

    async def count_rows(self, model: Type[SQLModel]) -> int:
        async with self.get_session() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return result.scalar_one()

    async def table_counts(self) -> Dict[str, int]:
        """Row counts for the collections the health endpoint reports on."""
        return {
            "user_preferences": await self.count_rows(UserPreferences),
            "cache": await self.count_rows(CacheEntry),
            "sessions": await self.count_rows(UserSession),
        }

    async def write_read_probe(self) -> bool:
        """Insert, read back and delete a probe row."""
        async with self.get_session() as session:
            probe = HealthProbe(
                random=random.random(),
                timestamp=datetime.now(timezone.utc)
            )
            session.add(probe)
            await session.commit()
            await session.refresh(probe)

            result = await session.execute(select(HealthProbe).where(HealthProbe.id == probe.id))
            found = result.scalar_one_or_none()

            await session.delete(probe)
            await session.commit()

        if found is None:
            raise RuntimeError("Write/Read test failed")
        return True

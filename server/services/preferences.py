"""CRUD over per-user preference documents."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import delete
from sqlmodel import select

from core.database import Database
from core.logging import get_logger
from models.preferences import UserPreferences, create_preferences, merge_preferences

logger = get_logger(__name__)


class PreferencesService:

    def __init__(self, database: Database):
        self.database = database

    async def get(self, user_id: int) -> Optional[UserPreferences]:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(UserPreferences).where(UserPreferences.user_id == user_id)
            )
            return result.scalars().first()

    async def create(self, user_id: int, username: str, email: str,
                     institute_id: int) -> Optional[UserPreferences]:
        """Insert defaults for a user. Returns None if preferences already exist."""
        async with self.database.get_session() as session:
            result = await session.execute(
                select(UserPreferences).where(UserPreferences.user_id == user_id)
            )
            if result.scalars().first():
                return None

            preferences = create_preferences(user_id, username, email, institute_id)
            session.add(preferences)
            await session.commit()
            await session.refresh(preferences)

        logger.info("User preferences created", user_id=user_id)
        return preferences

    async def update(self, user_id: int,
                     updates: Optional[Dict[str, Any]]) -> Optional[UserPreferences]:
        """Shallow-merge ``updates`` into the stored preferences."""
        async with self.database.get_session() as session:
            result = await session.execute(
                select(UserPreferences).where(UserPreferences.user_id == user_id)
            )
            preferences = result.scalars().first()
            if preferences is None:
                return None

            preferences.preferences = merge_preferences(preferences.preferences, updates)
            preferences.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(preferences)
            return preferences

    async def touch_last_login(self, user_id: int) -> bool:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(UserPreferences).where(UserPreferences.user_id == user_id)
            )
            preferences = result.scalars().first()
            if preferences is None:
                return False

            now = datetime.now(timezone.utc)
            preferences.last_login = now
            preferences.updated_at = now
            await session.commit()
            return True

    async def delete(self, user_id: int) -> bool:
        async with self.database.get_session() as session:
            result = await session.execute(
                delete(UserPreferences).where(UserPreferences.user_id == user_id)
            )
            await session.commit()
            return result.rowcount > 0

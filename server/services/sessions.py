"""Session bookkeeping: issued tokens, activity log and cleanup."""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy import delete, func, or_
from sqlmodel import select

from constants import SESSION_ACTIONS
from core.config import Settings
from core.database import Database
from core.logging import get_logger
from models.cache import utc_now
from models.session import (
    SessionActivity,
    UserSession,
    create_activity,
    create_session,
    deactivate_session,
    is_active,
    update_activity,
)

logger = get_logger(__name__)


class SessionService:
    """Tracks login sessions and what users do inside them."""

    def __init__(self, database: Database, settings: Settings,
                 clock: Callable[[], datetime] = utc_now):
        self.database = database
        self.settings = settings
        self.clock = clock

    async def start_session(
        self,
        user_id: int,
        token: str,
        session_id: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> UserSession:
        now = self.clock()
        session_row = create_session(
            user_id,
            token,
            session_id,
            expiration_hours=self.settings.session_expire_hours,
            user_agent=user_agent,
            ip_address=ip_address,
            now=now,
        )
        activity = create_activity(session_id, user_id, "login", ip_address=ip_address, now=now)

        async with self.database.get_session() as session:
            session.add(session_row)
            session.add(activity)
            await session.commit()
            await session.refresh(session_row)

        logger.info("Session started", user_id=user_id, session_id=session_id)
        return session_row

    async def get_session(self, session_id: str) -> Optional[UserSession]:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(UserSession).where(UserSession.session_id == session_id)
            )
            return result.scalars().first()

    async def is_session_active(self, session_id: str) -> bool:
        session_row = await self.get_session(session_id)
        return session_row is not None and is_active(session_row, self.clock())

    async def touch(self, session_id: str) -> bool:
        """Refresh last activity for a live session."""
        async with self.database.get_session() as session:
            result = await session.execute(
                select(UserSession).where(UserSession.session_id == session_id)
            )
            session_row = result.scalars().first()
            if session_row is None:
                return False
            update_activity(session_row, self.clock())
            await session.commit()
            return True

    async def end_session(self, session_id: str, ip_address: Optional[str] = None) -> bool:
        now = self.clock()
        async with self.database.get_session() as session:
            result = await session.execute(
                select(UserSession).where(UserSession.session_id == session_id)
            )
            session_row = result.scalars().first()
            if session_row is None:
                return False

            deactivate_session(session_row, now)
            session.add(create_activity(session_id, session_row.user_id, "logout",
                                        ip_address=ip_address, now=now))
            await session.commit()

        logger.info("Session ended", session_id=session_id)
        return True

    async def record_activity(
        self,
        session_id: str,
        user_id: int,
        action: str,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> SessionActivity:
        if action not in SESSION_ACTIONS:
            raise ValueError(f"Unknown session action: {action}")
        activity = create_activity(session_id, user_id, action, details, ip_address, now=self.clock())
        async with self.database.get_session() as session:
            session.add(activity)
            await session.commit()
            await session.refresh(activity)
        return activity

    def _stale_condition(self, now: datetime, include_idle: bool = True):
        clauses = [UserSession.is_active.is_(False), UserSession.expires_at < now]
        if include_idle:
            idle_cutoff = now - timedelta(days=self.settings.session_inactive_days)
            clauses.append(UserSession.last_activity < idle_cutoff)
        return or_(*clauses)

    async def count_inactive(self) -> int:
        """Sessions that are deactivated or past their expiry."""
        async with self.database.get_session() as session:
            result = await session.execute(
                select(func.count()).select_from(UserSession)
                .where(self._stale_condition(self.clock(), include_idle=False))
            )
            return result.scalar_one()

    async def cleanup(self) -> int:
        """Delete inactive, expired and long-idle sessions. Returns count deleted."""
        async with self.database.get_session() as session:
            result = await session.execute(
                delete(UserSession).where(self._stale_condition(self.clock()))
            )
            await session.commit()

        if result.rowcount:
            logger.info("Cleaned up stale sessions", count=result.rowcount)
        return result.rowcount

"""User authentication service with JWT handling."""

import uuid
from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any, Tuple

from jose import jwt, JWTError
from sqlalchemy import or_
from sqlmodel import select

from core.config import Settings
from core.database import Database
from core.logging import get_logger
from models.auth import Institute, User
from services.sessions import SessionService

logger = get_logger(__name__)


class UserAuthService:
    """Handles registration, login and JWT token management."""

    def __init__(self, database: Database, settings: Settings, sessions: SessionService):
        self.database = database
        self.settings = settings
        self.sessions = sessions

    async def get_user_by_identifier(self, identifier: str) -> Optional[User]:
        """Get user by username or email address."""
        async with self.database.get_session() as session:
            result = await session.execute(
                select(User).where(or_(
                    User.username == identifier.strip(),
                    User.email == identifier.lower().strip()
                ))
            )
            return result.scalars().first()

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        async with self.database.get_session() as session:
            result = await session.execute(
                select(User).where(User.id == user_id)
            )
            return result.scalars().first()

    async def _get_or_create_institute(self, session, name: str) -> Institute:
        result = await session.execute(select(Institute).where(Institute.name == name))
        institute = result.scalars().first()
        if institute is None:
            institute = Institute(name=name)
            session.add(institute)
            await session.flush()
            logger.info("Institute created", name=name, institute_id=institute.id)
        return institute

    async def register(
        self, username: str, email: str, password: str, institute_name: str
    ) -> Tuple[Optional[User], Optional[str]]:
        """
        Register a new user.
        Returns (user, None) on success, (None, error_message) on conflict.
        """
        async with self.database.get_session() as session:
            result = await session.execute(
                select(User).where(or_(
                    User.username == username.strip(),
                    User.email == email.lower().strip()
                ))
            )
            if result.scalars().first():
                return None, "User with this username or email already exists"

            institute = await self._get_or_create_institute(session, institute_name.strip())

            user = User.create(
                username=username,
                email=email,
                password=password,
                institute_id=institute.id,
                rounds=self.settings.bcrypt_rounds
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)

        logger.info("User registered", username=user.username, institute_id=user.institute_id)
        return user, None

    async def login(
        self,
        identifier: str,
        password: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Tuple[Optional[User], Optional[str], Optional[str]]:
        """
        Authenticate a user and open a session.
        Returns (user, token, None) on success, (None, None, error_message) on failure.
        """
        user = await self.get_user_by_identifier(identifier)
        if not user or not user.verify_password(password):
            return None, None, "Invalid credentials"

        now = datetime.now(timezone.utc)
        async with self.database.get_session() as session:
            result = await session.execute(select(User).where(User.id == user.id))
            db_user = result.scalars().first()
            if db_user:
                db_user.last_login = now
                db_user.updated_at = now
                await session.commit()

        session_id = uuid.uuid4().hex
        token = self.create_access_token(user, session_id)
        await self.sessions.start_session(user.id, token, session_id,
                                          user_agent=user_agent, ip_address=ip_address)

        logger.info("User logged in", user_id=user.id)
        return user, token, None

    async def logout(self, token: str, ip_address: Optional[str] = None) -> bool:
        payload = self.verify_token(token)
        if not payload or not payload.get("sid"):
            return False
        return await self.sessions.end_session(payload["sid"], ip_address=ip_address)

    def create_access_token(self, user: User, session_id: str) -> str:
        """Create JWT access token for user."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "institute_id": user.institute_id,
            "sid": session_id,
            "exp": now + timedelta(minutes=self.settings.jwt_expire_minutes),
            "iat": now
        }
        return jwt.encode(payload, self.settings.jwt_secret_key, algorithm=self.settings.jwt_algorithm)

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Verify JWT token and return payload.
        Returns None if token is invalid or expired.
        """
        try:
            return jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self.settings.jwt_algorithm]
            )
        except JWTError as e:
            logger.debug("Token verification failed", error=str(e))
            return None

    async def get_current_user(self, token: str) -> Tuple[Optional[User], Optional[str]]:
        """Resolve the user behind a token.

        Returns (user, None), or (None, reason) where reason is ``"invalid"``
        for a bad/expired/closed session and ``"missing"`` when the user no
        longer exists.
        """
        payload = self.verify_token(token)
        if not payload or not payload.get("sub"):
            return None, "invalid"

        session_id = payload.get("sid")
        if session_id and not await self.sessions.is_session_active(session_id):
            return None, "invalid"

        user = await self.get_user_by_id(int(payload["sub"]))
        if not user:
            return None, "missing"
        return user, None

"""Login sessions and the activity log attached to them."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from sqlmodel import SQLModel, Field, Column, DateTime, JSON

from models.cache import ensure_utc, utc_now


class UserSession(SQLModel, table=True):
    """One issued token and its lifetime."""

    __tablename__ = "sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: str = Field(unique=True, index=True, max_length=64)
    user_id: int = Field(index=True)
    token: str = Field(max_length=2048)
    user_agent: Optional[str] = Field(default=None, max_length=512)
    ip_address: Optional[str] = Field(default=None, max_length=64)
    is_active: bool = Field(default=True, index=True)
    session_meta: Dict[str, Any] = Field(default_factory=dict, sa_column=Column("metadata", JSON))
    last_activity: datetime = Field(sa_column=Column(DateTime(timezone=True)))
    expires_at: datetime = Field(sa_column=Column(DateTime(timezone=True), index=True))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True)))


class SessionActivity(SQLModel, table=True):
    """Audit record of something a user did within a session."""

    __tablename__ = "session_activities"

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: str = Field(index=True, max_length=64)
    user_id: int = Field(index=True)
    action: str = Field(max_length=32)
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    ip_address: Optional[str] = Field(default=None, max_length=64)
    timestamp: datetime = Field(sa_column=Column(DateTime(timezone=True)))


def create_session(
    user_id: int,
    token: str,
    session_id: str,
    expiration_hours: int = 24,
    metadata: Optional[Dict[str, Any]] = None,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
    now: Optional[datetime] = None,
) -> UserSession:
    now = now or utc_now()
    return UserSession(
        session_id=session_id,
        user_id=user_id,
        token=token,
        user_agent=user_agent,
        ip_address=ip_address,
        is_active=True,
        session_meta={
            "loginMethod": "password",
            "deviceType": "desktop",
            **(metadata or {}),
        },
        last_activity=now,
        expires_at=now + timedelta(hours=expiration_hours),
        created_at=now,
    )


def update_activity(session: UserSession, now: Optional[datetime] = None) -> UserSession:
    session.last_activity = now or utc_now()
    return session


def deactivate_session(session: UserSession, now: Optional[datetime] = None) -> UserSession:
    session.is_active = False
    session.last_activity = now or utc_now()
    return session


def is_expired(session: UserSession, now: Optional[datetime] = None) -> bool:
    return (now or utc_now()) > ensure_utc(session.expires_at)


def is_active(session: UserSession, now: Optional[datetime] = None) -> bool:
    return session.is_active and not is_expired(session, now)


def should_cleanup(session: UserSession, inactive_days: int = 7,
                   now: Optional[datetime] = None) -> bool:
    """Inactive, expired, or idle for longer than ``inactive_days``."""
    now = now or utc_now()
    idle = now - ensure_utc(session.last_activity)
    return (
        not session.is_active
        or is_expired(session, now)
        or idle > timedelta(days=inactive_days)
    )


def create_activity(
    session_id: str,
    user_id: int,
    action: str,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SessionActivity:
    return SessionActivity(
        session_id=session_id,
        user_id=user_id,
        action=action,
        details=details or {},
        ip_address=ip_address,
        timestamp=now or utc_now(),
    )

"""User preference documents and their default values."""

import copy
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from sqlmodel import SQLModel, Field, Column, DateTime, JSON


DEFAULT_PREFERENCES: Dict[str, Any] = {
    "theme": "auto",
    "language": "en",
    "notifications": {
        "email": True,
        "browser": True,
        "workflow_completion": True,
        "system_updates": False,
    },
    "dashboard": {
        "show_recent_activity": True,
        "show_quick_stats": True,
        "default_view": "overview",
    },
    "workflow": {
        "auto_save": True,
        "default_parameters": {},
    },
}

DEFAULT_SETTINGS: Dict[str, Any] = {
    "timezone": "UTC",
    "date_format": "YYYY-MM-DD",
    "number_format": "en-US",
}


class UserPreferences(SQLModel, table=True):
    """Per-user UI preferences and display settings."""

    __tablename__ = "user_preferences"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True, unique=True)
    username: str = Field(max_length=100)
    email: str = Field(max_length=255)
    institute_id: int
    preferences: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    settings: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    last_login: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "username": self.username,
            "email": self.email,
            "institute_id": self.institute_id,
            "preferences": self.preferences,
            "settings": self.settings,
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


def create_preferences(user_id: int, username: str, email: str,
                       institute_id: int) -> UserPreferences:
    """New preferences document seeded with the defaults."""
    now = datetime.now(timezone.utc)
    return UserPreferences(
        user_id=user_id,
        username=username,
        email=email,
        institute_id=institute_id,
        preferences=copy.deepcopy(DEFAULT_PREFERENCES),
        settings=copy.deepcopy(DEFAULT_SETTINGS),
        last_login=now,
        created_at=now,
        updated_at=now,
    )


def merge_preferences(current: Dict[str, Any], updates: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Shallow merge: top-level keys in ``updates`` replace the stored ones."""
    return {**(current or {}), **(updates or {})}

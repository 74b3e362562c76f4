"""User authentication models."""

from datetime import datetime, timezone
from typing import Optional
from sqlmodel import SQLModel, Field, Column, DateTime
from sqlalchemy import func
import bcrypt


class Institute(SQLModel, table=True):
    """Research institute a user belongs to, created on first registration."""

    __tablename__ = "institutes"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True, max_length=255)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), server_default=func.now())
    )


class User(SQLModel, table=True):
    """User account for authentication."""

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True, max_length=100)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=255)
    institute_id: Optional[int] = Field(default=None, foreign_key="institutes.id")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), server_default=func.now())
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), onupdate=func.now())
    )
    last_login: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    def set_password(self, password: str, rounds: int = 12) -> None:
        """Hash and set password using bcrypt."""
        salt = bcrypt.gensalt(rounds=rounds)
        self.password_hash = bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    def verify_password(self, password: str) -> bool:
        """Verify password against stored hash."""
        return bcrypt.checkpw(
            password.encode('utf-8'),
            self.password_hash.encode('utf-8')
        )

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "institute_id": self.institute_id,
        }

    @classmethod
    def create(cls, username: str, email: str, password: str,
               institute_id: Optional[int] = None, rounds: int = 12) -> "User":
        """Factory method to create a user with hashed password."""
        user = cls(
            username=username.strip(),
            email=email.lower().strip(),
            password_hash="",  # Will be set below
            institute_id=institute_id
        )
        user.set_password(password, rounds=rounds)
        return user

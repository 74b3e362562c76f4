"""Scratch table used by the write/read health probe."""

from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, Column, DateTime


class HealthProbe(SQLModel, table=True):
    __tablename__ = "health_test"

    id: Optional[int] = Field(default=None, primary_key=True)
    test: bool = Field(default=True)
    random: float
    timestamp: datetime = Field(sa_column=Column(DateTime(timezone=True)))

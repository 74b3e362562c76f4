"""Cache entry model with TTL-by-type policy.

The table row doubles as the domain object. All helpers in this module are
pure: they build or inspect entries and never touch storage.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel
from sqlmodel import SQLModel, Field, Column, DateTime, JSON

from constants import CACHE_TTL_MINUTES, DEFAULT_CACHE_TTL_MINUTES


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops the offset on read)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class CacheEntry(SQLModel, table=True):
    """Cached payload scoped by (key, user_id) with a fixed expiry."""

    __tablename__ = "cache"

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(index=True, max_length=512)
    data: Any = Field(default=None, sa_column=Column(JSON))
    user_id: Optional[int] = Field(default=None, index=True)
    type: str = Field(max_length=32)
    # "metadata" is reserved on SQLModel classes, so the attribute is renamed
    meta: Dict[str, Any] = Field(default_factory=dict, sa_column=Column("metadata", JSON))
    expires_at: datetime = Field(sa_column=Column(DateTime(timezone=True), index=True))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), index=True))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True)))
    last_accessed: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape returned by the API."""
        last_accessed = ensure_utc(self.last_accessed)
        return {
            "id": self.id,
            "key": self.key,
            "data": self.data,
            "userId": self.user_id,
            "type": self.type,
            "metadata": dict(self.meta or {}),
            "expires_at": ensure_utc(self.expires_at).isoformat(),
            "created_at": ensure_utc(self.created_at).isoformat(),
            "updated_at": ensure_utc(self.updated_at).isoformat(),
            "last_accessed": last_accessed.isoformat() if last_accessed else None,
        }


class CacheStats(BaseModel):
    """Aggregate view over every stored entry."""

    total_entries: int = 0
    total_size: int = 0
    hit_rate: float = 0.0
    expired_entries: int = 0


def default_ttl(cache_type: str) -> int:
    """Default TTL in minutes for a cache type."""
    return CACHE_TTL_MINUTES.get(cache_type, DEFAULT_CACHE_TTL_MINUTES)


def payload_size(data: Any) -> int:
    """Byte length of the compact JSON serialisation of ``data``."""
    serialized = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return len(serialized.encode("utf-8"))


def create_entry(
    key: str,
    data: Any,
    cache_type: str,
    ttl_minutes: Optional[float] = None,
    user_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> CacheEntry:
    """Build a fresh entry.

    Caller metadata is merged over the computed ``size``/``hits`` defaults, so
    a caller can override them.
    """
    now = now or utc_now()
    ttl = ttl_minutes or default_ttl(cache_type)

    return CacheEntry(
        key=key,
        data=data,
        user_id=user_id,
        type=cache_type,
        meta={
            "size": payload_size(data),
            "hits": 0,
            **(metadata or {}),
        },
        expires_at=now + timedelta(minutes=ttl),
        created_at=now,
        updated_at=now,
    )


def is_expired(entry: CacheEntry, now: Optional[datetime] = None) -> bool:
    return (now or utc_now()) > ensure_utc(entry.expires_at)


def record_hit(entry: CacheEntry, now: Optional[datetime] = None) -> CacheEntry:
    """Return a copy of ``entry`` with one more hit and refreshed access times."""
    now = now or utc_now()
    meta = dict(entry.meta or {})
    meta["hits"] = (meta.get("hits") or 0) + 1

    return CacheEntry(
        id=entry.id,
        key=entry.key,
        data=entry.data,
        user_id=entry.user_id,
        type=entry.type,
        meta=meta,
        expires_at=entry.expires_at,
        created_at=entry.created_at,
        updated_at=now,
        last_accessed=now,
    )

"""Cache store backed by the ``cache`` table.

Every operation is a single attempt against the database: failures propagate
to the caller, who decides whether to retry. Expiry is enforced lazily on read
and in bulk by ``cleanup_expired``.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import delete, func
from sqlmodel import select

from core.database import Database
from core.logging import get_logger, log_cache_operation
from models.cache import (
    CacheEntry,
    CacheStats,
    create_entry,
    ensure_utc,
    is_expired,
    record_hit,
    utc_now,
)

logger = get_logger(__name__)

_COPIED_COLUMNS = (
    "key", "data", "user_id", "type", "meta",
    "expires_at", "created_at", "updated_at", "last_accessed",
)


def _scope(stmt, key: str, user_id: Optional[int]):
    """Exact (key, user_id) match; a missing user only matches unscoped rows."""
    stmt = stmt.where(CacheEntry.key == key)
    if user_id is None:
        return stmt.where(CacheEntry.user_id.is_(None))
    return stmt.where(CacheEntry.user_id == user_id)


def _replace(row: CacheEntry, source: CacheEntry) -> CacheEntry:
    """Overwrite every stored column of ``row`` with the values of ``source``."""
    for column in _COPIED_COLUMNS:
        setattr(row, column, getattr(source, column))
    return row


class CacheStore:
    """Expiry-aware persistence for cache entries."""

    def __init__(self, database: Database, clock: Callable[[], datetime] = utc_now):
        self.database = database
        self.clock = clock

    async def get(self, key: str, user_id: Optional[int] = None) -> Optional[CacheEntry]:
        """Return the live entry for ``(key, user_id)`` and record the hit.

        Expired entries are deleted and reported as a miss.
        """
        now = self.clock()
        async with self.database.get_session() as session:
            result = await session.execute(_scope(select(CacheEntry), key, user_id))
            row = result.scalars().first()

            if row is None:
                log_cache_operation(logger, "get", key, hit=False, user_id=user_id)
                return None

            if is_expired(row, now):
                await session.delete(row)
                await session.commit()
                log_cache_operation(logger, "get", key, hit=False, user_id=user_id, expired=True)
                return None

            updated = record_hit(row, now)
            _replace(row, updated)
            await session.commit()

        log_cache_operation(logger, "get", key, hit=True, user_id=user_id,
                            hits=updated.meta.get("hits"))
        return updated

    async def put(
        self,
        key: str,
        data: Any,
        cache_type: str,
        ttl_minutes: Optional[float] = None,
        user_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Tuple[CacheEntry, bool]:
        """Store a fresh entry, replacing any existing one for the same scope.

        Returns the stored entry and whether a new row was created.
        """
        entry = create_entry(key, data, cache_type, ttl_minutes, user_id, metadata, now=self.clock())

        async with self.database.get_session() as session:
            result = await session.execute(_scope(select(CacheEntry), key, user_id))
            existing = result.scalars().first()

            if existing is not None:
                _replace(existing, entry)
                stored = existing
            else:
                session.add(entry)
                stored = entry

            await session.commit()
            await session.refresh(stored)

        log_cache_operation(logger, "set", key, user_id=user_id, type=cache_type,
                            created=existing is None)
        return stored, existing is None

    async def delete(self, key: str, user_id: Optional[int] = None) -> bool:
        async with self.database.get_session() as session:
            result = await session.execute(_scope(delete(CacheEntry), key, user_id))
            await session.commit()
            deleted = result.rowcount > 0

        log_cache_operation(logger, "delete", key, user_id=user_id, deleted=deleted)
        return deleted

    async def delete_all_for_user(self, user_id: int) -> int:
        async with self.database.get_session() as session:
            result = await session.execute(
                delete(CacheEntry).where(CacheEntry.user_id == user_id)
            )
            await session.commit()

        logger.info("Deleted cache entries for user", user_id=user_id, count=result.rowcount)
        return result.rowcount

    async def cleanup_expired(self) -> int:
        """Remove every entry whose expiry is in the past. Returns count deleted."""
        now = self.clock()
        async with self.database.get_session() as session:
            result = await session.execute(
                delete(CacheEntry).where(CacheEntry.expires_at < now)
            )
            await session.commit()

        if result.rowcount:
            logger.info("Cleaned up expired cache entries", count=result.rowcount)
        return result.rowcount

    async def count_expired(self) -> int:
        now = self.clock()
        async with self.database.get_session() as session:
            result = await session.execute(
                select(func.count()).select_from(CacheEntry).where(CacheEntry.expires_at < now)
            )
            return result.scalar_one()

    async def stats(self) -> CacheStats:
        """Aggregate size and hit counters over all entries, expired included."""
        now = self.clock()
        async with self.database.get_session() as session:
            result = await session.execute(select(CacheEntry.meta, CacheEntry.expires_at))
            rows = result.all()

        metas = [meta or {} for meta, _ in rows]

        total_entries = len(metas)
        total_size = sum(meta.get("size") or 0 for meta in metas)
        total_hits = sum(meta.get("hits") or 0 for meta in metas)

        return CacheStats(
            total_entries=total_entries,
            total_size=total_size,
            hit_rate=total_hits / total_entries if total_entries else 0.0,
            expired_entries=sum(1 for _, expires_at in rows if ensure_utc(expires_at) < now),
        )

    async def list(self, user_id: Optional[int] = None, page: int = 1,
                   limit: int = 10) -> Tuple[List[CacheEntry], int]:
        """Page through entries, newest first. ``user_id`` narrows to one user."""
        page = max(page, 1)
        limit = max(limit, 1)

        stmt = select(CacheEntry)
        count_stmt = select(func.count()).select_from(CacheEntry)
        if user_id is not None:
            stmt = stmt.where(CacheEntry.user_id == user_id)
            count_stmt = count_stmt.where(CacheEntry.user_id == user_id)

        stmt = stmt.order_by(CacheEntry.created_at.desc()).offset((page - 1) * limit).limit(limit)

        async with self.database.get_session() as session:
            entries = (await session.execute(stmt)).scalars().all()
            total = (await session.execute(count_stmt)).scalar_one()

        return list(entries), total

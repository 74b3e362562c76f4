"""Cache routes: lookup, listing, statistics, population and eviction."""

import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from constants import CACHE_TYPES
from core.cache import CacheStore
from core.container import container
from core.exceptions import APIError, InternalError, NotFoundError, ValidationError
from core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/cache", tags=["cache"])


class CacheWriteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: Optional[str] = None
    data: Any = None
    type: Optional[str] = None
    ttl_minutes: Optional[float] = Field(default=None, alias="ttlMinutes")
    user_id: Optional[int] = Field(default=None, alias="userId")
    metadata: Optional[Dict[str, Any]] = None


def get_cache_store() -> CacheStore:
    return container.cache()


@router.get("")
async def read_cache(
    key: Optional[str] = None,
    stats: Optional[str] = None,
    user_id: Optional[int] = Query(default=None, alias="userId"),
    page: int = 1,
    limit: int = 10,
    store: CacheStore = Depends(get_cache_store)
):
    """Statistics (``?stats=true``), one entry (``?key=``) or a page of entries."""
    try:
        if stats == "true":
            return {"data": (await store.stats()).model_dump()}

        if key:
            entry = await store.get(key, user_id)
            if entry is None:
                raise NotFoundError("Cache entry not found")
            return {"data": entry.data}

        page = max(page, 1)
        limit = max(limit, 1)
        entries, total = await store.list(user_id=user_id, page=page, limit=limit)
        return {
            "data": [entry.to_dict() for entry in entries],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }
    except APIError:
        raise
    except Exception as e:
        logger.error("Error fetching cache", key=key, error=str(e), exc_info=True)
        raise InternalError()


@router.post("")
async def write_cache(
    request: CacheWriteRequest,
    response: Response,
    store: CacheStore = Depends(get_cache_store)
):
    """Create or overwrite the entry for ``(key, userId)``."""
    # JSON null counts as a missing payload; falsy values such as 0 or "" are stored
    if not request.key or request.data is None or not request.type:
        raise ValidationError("Missing required fields: key, data, type")
    if request.type not in CACHE_TYPES:
        raise ValidationError(f"Invalid cache type: {request.type}")

    try:
        entry, created = await store.put(
            request.key,
            request.data,
            request.type,
            ttl_minutes=request.ttl_minutes,
            user_id=request.user_id,
            metadata=request.metadata,
        )
    except Exception as e:
        logger.error("Error creating cache entry", key=request.key, error=str(e), exc_info=True)
        raise InternalError()

    if created:
        response.status_code = 201
    return {"data": entry.to_dict()}


@router.delete("")
async def delete_cache(
    key: Optional[str] = None,
    cleanup: Optional[str] = None,
    user_id: Optional[int] = Query(default=None, alias="userId"),
    store: CacheStore = Depends(get_cache_store)
):
    """Purge expired entries, delete one entry, or clear a user's entries."""
    if cleanup != "true" and not key and user_id is None:
        raise ValidationError("Key or cleanup parameter required")

    try:
        if cleanup == "true":
            count = await store.cleanup_expired()
            return {"message": f"Cleaned up {count} expired cache entries"}

        if key:
            if not await store.delete(key, user_id):
                raise NotFoundError("Cache entry not found")
            return {"message": "Cache entry deleted successfully"}

        count = await store.delete_all_for_user(user_id)
        return {"message": f"Deleted {count} cache entries for user"}
    except APIError:
        raise
    except Exception as e:
        logger.error("Error deleting cache", key=key, error=str(e), exc_info=True)
        raise InternalError()

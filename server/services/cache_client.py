"""Logical cache facade over :class:`core.cache.CacheStore`.

Callers address the cache by endpoint + parameters + user; the facade derives
the physical key and offers a read-through helper that falls back to a
caller-supplied fetch operation.
"""

import json
import re
from typing import Any, Awaitable, Callable, Optional

from constants import CACHE_TYPE_API_RESPONSE
from core.cache import CacheStore
from core.logging import get_logger

logger = get_logger(__name__)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def derive_key(endpoint: str, parameters: Any = None, user_id: Optional[int] = None) -> str:
    """Deterministic store key for a logical cache slot.

    Parameters are compared by their serialised JSON, so key order matters.
    """
    base_key = _NON_ALNUM.sub("_", endpoint)
    param_key = ""
    if parameters is not None:
        serialized = json.dumps(parameters, separators=(",", ":"), ensure_ascii=False)
        param_key = "_" + _NON_ALNUM.sub("_", serialized)
    user_key = f"_user_{user_id}" if user_id is not None else ""
    return f"{base_key}{param_key}{user_key}"


class CacheClient:
    """Read-through access to cached API responses."""

    def __init__(self, store: CacheStore):
        self.store = store

    derive_key = staticmethod(derive_key)

    async def get_cached_response(self, endpoint: str, parameters: Any = None,
                                  user_id: Optional[int] = None) -> Optional[Any]:
        entry = await self.store.get(derive_key(endpoint, parameters, user_id), user_id)
        return entry.data if entry is not None else None

    async def set_cached_response(
        self,
        endpoint: str,
        data: Any,
        parameters: Any = None,
        user_id: Optional[int] = None,
        ttl_minutes: Optional[float] = None,
    ) -> None:
        await self.store.put(
            derive_key(endpoint, parameters, user_id),
            data,
            CACHE_TYPE_API_RESPONSE,
            ttl_minutes=ttl_minutes,
            user_id=user_id,
            metadata={"endpoint": endpoint, "parameters": parameters},
        )

    async def invalidate(self, endpoint: str, parameters: Any = None,
                         user_id: Optional[int] = None) -> bool:
        return await self.store.delete(derive_key(endpoint, parameters, user_id), user_id)

    async def read_through(
        self,
        endpoint: str,
        fetch_operation: Callable[[], Awaitable[Any]],
        user_id: Optional[int] = None,
        ttl_minutes: Optional[float] = None,
        use_cache: bool = True,
        parameters: Any = None,
    ) -> Any:
        """Serve the cached value or fetch, store and return a fresh one.

        With ``use_cache=False`` the cached value is skipped but the fresh
        result still replaces it. A failing fetch propagates and leaves the
        cache untouched.
        """
        key = derive_key(endpoint, parameters, user_id)

        if use_cache:
            entry = await self.store.get(key, user_id)
            if entry is not None:
                return entry.data

        data = await fetch_operation()

        await self.store.put(
            key,
            data,
            CACHE_TYPE_API_RESPONSE,
            ttl_minutes=ttl_minutes,
            user_id=user_id,
            metadata={"endpoint": endpoint, "parameters": parameters},
        )
        logger.debug("Read-through populated cache", endpoint=endpoint, cache_key=key,
                     refreshed=not use_cache)
        return data

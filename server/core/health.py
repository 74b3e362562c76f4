"""Health check utilities.

Provides uptime tracking and the payloads served by ``/api/health``.
"""
import platform
import sys
import time
from datetime import datetime, timezone
from typing import Dict, Any, TYPE_CHECKING

import psutil

from constants import CLEANUP_EXPIRED_CACHE_THRESHOLD, CLEANUP_INACTIVE_SESSIONS_THRESHOLD
from core.logging import get_logger

if TYPE_CHECKING:
    from core.cache import CacheStore
    from core.database import Database
    from services.sessions import SessionService

logger = get_logger(__name__)

# Module-level startup time tracking
_startup_time: float = 0.0


def set_startup_time() -> None:
    """Record the application startup time. Call once during lifespan startup."""
    global _startup_time
    _startup_time = time.time()


def get_uptime() -> float:
    """Get uptime in seconds since startup."""
    return time.time() - _startup_time if _startup_time else 0.0


def get_memory_usage() -> Dict[str, int]:
    """Resident and virtual memory of this process in bytes."""
    info = psutil.Process().memory_info()
    return {"rss": info.rss, "vms": info.vms}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def get_health_status(database: "Database") -> Dict[str, Any]:
    """Connectivity and table overview.

    The ``status`` key is ``"unhealthy"`` whenever the database cannot be
    reached or queried; callers map that to HTTP 503.
    """
    if not await database.check_connection():
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "timestamp": _timestamp(),
        }

    try:
        tables = await database.table_names()
        counts = await database.table_counts()
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return {
            "status": "unhealthy",
            "database": "error",
            "error": str(e),
            "timestamp": _timestamp(),
        }

    return {
        "status": "healthy",
        "database": {
            "connected": True,
            "name": database.settings.database_name,
            "collections": tables,
            "counts": counts,
        },
        "timestamp": _timestamp(),
        "uptime": round(get_uptime(), 1),
        "memory": get_memory_usage(),
        "version": {
            "python": sys.version.split()[0],
            "platform": platform.system().lower(),
        },
    }


async def get_detailed_health(
    database: "Database",
    cache: "CacheStore",
    sessions: "SessionService",
) -> Dict[str, Any]:
    """Write/read probe plus maintenance counters."""
    try:
        await database.write_read_probe()
        expired_count = await cache.count_expired()
        inactive_count = await sessions.count_inactive()
    except Exception as e:
        logger.error("Detailed health check failed", error=str(e))
        return {
            "status": "unhealthy",
            "tests": {
                "connection": "failed",
                "write_read": "failed",
            },
            "error": str(e),
            "timestamp": _timestamp(),
        }

    return {
        "status": "healthy",
        "tests": {
            "connection": "passed",
            "write_read": "passed",
        },
        "maintenance": {
            "expired_cache_entries": expired_count,
            "inactive_sessions": inactive_count,
            "cleanup_recommended": (
                expired_count > CLEANUP_EXPIRED_CACHE_THRESHOLD
                or inactive_count > CLEANUP_INACTIVE_SESSIONS_THRESHOLD
            ),
        },
        "timestamp": _timestamp(),
    }

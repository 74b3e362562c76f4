"""Dashboard data: per-user statistics and system health, both memoized."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from constants import (
    SYSTEM_HEALTH_CACHE_KEY,
    SYSTEM_HEALTH_TTL_MINUTES,
    USER_STATS_TTL_MINUTES,
    user_stats_cache_key,
)
from core.cache import CacheStore
from core.database import Database
from core.exceptions import UpstreamError
from core.logging import get_logger
from services.cache_client import CacheClient
from services.simulation_client import SimulationClient
from services.stats_events import StatsEventBus, StatsUpdate

logger = get_logger(__name__)

# Dashboard field -> simulation API field
_STATS_FIELDS = {
    "projectCount": "project_count",
    "simulationCount": "simulation_count",
    "lastActivity": "last_activity",
    "completedProjects": "completed_projects",
}


def normalize_user_stats(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "projectCount": raw.get("project_count") or 0,
        "simulationCount": raw.get("simulation_count") or 0,
        "lastActivity": raw.get("last_activity") or "No recent activity",
        "completedProjects": raw.get("completed_projects") or 0,
    }


def to_upstream_stats(changes: Dict[str, Any]) -> Dict[str, Any]:
    return {
        upstream: changes[field]
        for field, upstream in _STATS_FIELDS.items()
        if field in changes
    }


class DashboardService:
    """Serves dashboard widgets through the read-through cache."""

    def __init__(
        self,
        cache_client: CacheClient,
        cache_store: CacheStore,
        database: Database,
        simulation: SimulationClient,
        events: StatsEventBus,
    ):
        self.cache_client = cache_client
        self.cache_store = cache_store
        self.database = database
        self.simulation = simulation
        self.events = events

    async def get_user_stats(self, user_id: int, token: Optional[str],
                             use_cache: bool = True) -> Dict[str, Any]:
        async def fetch() -> Dict[str, Any]:
            return normalize_user_stats(await self.simulation.get_user_stats(token))

        return await self.cache_client.read_through(
            user_stats_cache_key(user_id),
            fetch,
            user_id=user_id,
            ttl_minutes=USER_STATS_TTL_MINUTES,
            use_cache=use_cache,
            parameters={},
        )

    async def get_system_health(self, user_id: Optional[int] = None,
                                use_cache: bool = True) -> Dict[str, Any]:
        return await self.cache_client.read_through(
            SYSTEM_HEALTH_CACHE_KEY,
            self._check_system_health,
            user_id=user_id,
            ttl_minutes=SYSTEM_HEALTH_TTL_MINUTES,
            use_cache=use_cache,
            parameters={},
        )

    async def _check_system_health(self) -> Dict[str, Any]:
        api_status = await self._probe(self.simulation.health_check, "api")
        fuseki_status = await self._probe(self.simulation.fuseki_ping, "fuseki")
        db_connected = await self.database.check_connection()

        cache_stats = None
        if db_connected:
            cache_stats = (await self.cache_store.stats()).model_dump()

        return {
            "apiStatus": api_status,
            "fusekiStatus": fuseki_status,
            "databaseStatus": "healthy" if db_connected else "unhealthy",
            "cacheStats": cache_stats,
            "lastChecked": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    async def _probe(check, name: str) -> str:
        try:
            await check()
            return "healthy"
        except Exception as e:
            logger.warning("Upstream health probe failed", service=name, error=str(e))
            return "unhealthy"

    async def update_user_stats(self, user_id: int, changes: Dict[str, Any],
                                token: Optional[str]) -> int:
        """Push changes upstream, drop the cached copy and notify listeners.

        Returns the number of listeners notified.
        """
        await self.simulation.update_user_stats(to_upstream_stats(changes), token)
        await self.cache_client.invalidate(user_stats_cache_key(user_id), {}, user_id)
        return await self.events.publish(StatsUpdate(user_id=user_id, changes=changes))

    async def record_activity(self, user_id: int, changes: Dict[str, Any],
                              token: Optional[str]) -> None:
        """Best-effort stats update after a completed workflow."""
        try:
            await self.update_user_stats(user_id, changes, token)
        except UpstreamError as e:
            logger.warning("Failed to update stats on server", user_id=user_id, error=e.message)

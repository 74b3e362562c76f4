"""Periodic maintenance sweep for expired cache entries and stale sessions.

All configuration from Settings (environment variables).
"""
import asyncio
from typing import Dict, Optional, TYPE_CHECKING

from core.logging import get_logger

if TYPE_CHECKING:
    from core.cache import CacheStore
    from core.config import Settings
    from services.sessions import SessionService

logger = get_logger(__name__)


class CleanupService:
    """Background cleanup so expired rows do not accumulate.

    Each pass:
    - Deletes cache entries past their expiry
    - Deletes inactive, expired or long-idle sessions
    """

    def __init__(
        self,
        cache: "CacheStore",
        sessions: "SessionService",
        settings: "Settings"
    ):
        self.cache = cache
        self.sessions = sessions
        self.settings = settings
        self._running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start the cleanup service background task."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._cleanup_loop())
        logger.info("Cleanup service started", interval=self.settings.cache_cleanup_interval)

    async def stop(self) -> None:
        """Stop the cleanup service gracefully."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Cleanup service stopped")

    @property
    def running(self) -> bool:
        return self._running

    async def _cleanup_loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error("Cleanup failed", error=str(e))
            await asyncio.sleep(self.settings.cache_cleanup_interval)

    async def run_once(self) -> Dict[str, int]:
        """Execute one cleanup pass and return per-target counts."""
        results = {
            "expired_cache": await self.cache.cleanup_expired(),
            "stale_sessions": await self.sessions.cleanup(),
        }
        if sum(results.values()) > 0:
            logger.info("Cleanup completed", **results)
        return results

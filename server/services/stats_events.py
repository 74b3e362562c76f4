"""In-process channel for dashboard statistics updates.

Whoever completes a workflow publishes a ``StatsUpdate``; dashboard listeners
(WebSocket connections, tests, other services) register a callback to hear
about it. There is no ambient global hook.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Set

from core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class StatsUpdate:
    user_id: int
    changes: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": "stats_updated",
            "data": {
                "user_id": self.user_id,
                "changes": self.changes,
                "timestamp": self.timestamp.isoformat(),
            },
        }


StatsListener = Callable[[StatsUpdate], Awaitable[None]]


class StatsEventBus:
    """Explicit subscribe/publish registry for stats updates."""

    def __init__(self):
        self._listeners: Set[StatsListener] = set()
        self._lock = asyncio.Lock()

    async def subscribe(self, listener: StatsListener) -> Callable[[], Awaitable[None]]:
        """Register ``listener``. Returns a coroutine function that unsubscribes it."""
        async with self._lock:
            self._listeners.add(listener)
        logger.debug("Stats listener subscribed", total=len(self._listeners))

        async def unsubscribe() -> None:
            await self.unsubscribe(listener)

        return unsubscribe

    async def unsubscribe(self, listener: StatsListener) -> None:
        async with self._lock:
            self._listeners.discard(listener)
        logger.debug("Stats listener unsubscribed", total=len(self._listeners))

    async def publish(self, update: StatsUpdate) -> int:
        """Deliver ``update`` to every listener. Returns the number notified.

        A failing listener is logged and does not affect the others.
        """
        async with self._lock:
            listeners = list(self._listeners)

        if not listeners:
            return 0

        delivered = 0

        async def notify(listener: StatsListener):
            nonlocal delivered
            try:
                await listener(update)
                delivered += 1
            except Exception as e:
                logger.warning("Stats listener failed", error=str(e))

        async with asyncio.TaskGroup() as tg:
            for listener in listeners:
                tg.create_task(notify(listener))

        return delivered

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

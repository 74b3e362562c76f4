"""Periodic cleanup service."""

import asyncio

from core.cleanup import CleanupService


async def test_run_once_purges_cache_and_sessions(store, sessions, settings, clock):
    await store.put("old", 1, "api_response", ttl_minutes=1)
    await store.put("new", 2, "api_response", ttl_minutes=60)
    await sessions.start_session(1, "tok", "closed")
    await sessions.end_session("closed")
    clock.advance(minutes=5)

    results = await CleanupService(store, sessions, settings).run_once()

    assert results == {"expired_cache": 1, "stale_sessions": 1}
    assert (await store.get("new")).data == 2


async def test_start_and_stop(store, sessions, settings):
    service = CleanupService(store, sessions, settings)

    await service.start()
    assert service.running
    await asyncio.sleep(0)

    await service.stop()
    assert not service.running

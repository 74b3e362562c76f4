"""/api/health endpoints."""

from datetime import timedelta


async def test_health_reports_tables_and_counts(client):
    await client.post("/api/cache", json={"key": "k", "data": 1, "type": "api_response"})

    response = await client.get("/api/health")
    body = response.json()

    assert response.status_code == 200
    assert body["status"] == "healthy"
    assert "cache" in body["database"]["collections"]
    assert body["database"]["counts"]["cache"] == 1
    assert body["memory"]["rss"] > 0


async def test_health_is_503_when_database_is_down(client, database):
    await database.shutdown()
    database.async_session = None

    response = await client.get("/api/health")
    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


async def test_detailed_health_reports_maintenance_counters(client, clock):
    await client.post("/api/cache", json={"key": "a", "data": 1, "type": "api_response", "ttlMinutes": 1})
    await client.post("/api/cache", json={"key": "b", "data": 1, "type": "api_response"})
    clock.advance(minutes=2)

    response = await client.post("/api/health")
    body = response.json()

    assert response.status_code == 200
    assert body["tests"] == {"connection": "passed", "write_read": "passed"}
    assert body["maintenance"]["expired_cache_entries"] == 1
    assert body["maintenance"]["inactive_sessions"] == 0
    assert body["maintenance"]["cleanup_recommended"] is False


async def test_cleanup_recommended_past_threshold(client, store, clock, monkeypatch):
    monkeypatch.setattr("core.health.CLEANUP_EXPIRED_CACHE_THRESHOLD", 1)
    for i in range(2):
        await store.put(f"k{i}", i, "api_response", ttl_minutes=1)
    clock.now += timedelta(minutes=5)

    response = await client.post("/api/health")
    assert response.json()["maintenance"]["cleanup_recommended"] is True

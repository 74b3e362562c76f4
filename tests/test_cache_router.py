"""HTTP surface of /api/cache."""


async def test_post_creates_then_overwrites(client):
    body = {"key": "stats_x", "data": {"a": 1}, "type": "api_response", "userId": 7}

    created = await client.post("/api/cache", json=body)
    assert created.status_code == 201
    assert created.json()["data"]["userId"] == 7
    assert created.json()["data"]["metadata"]["hits"] == 0

    body["data"] = {"a": 2}
    updated = await client.post("/api/cache", json=body)
    assert updated.status_code == 200
    assert updated.json()["data"]["data"] == {"a": 2}


async def test_post_requires_key_data_and_type(client):
    response = await client.post("/api/cache", json={"key": "k", "type": "api_response"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields: key, data, type"}


async def test_get_by_key(client):
    await client.post("/api/cache", json={"key": "k", "data": [1, 2], "type": "user_data"})

    response = await client.get("/api/cache", params={"key": "k"})
    assert response.status_code == 200
    assert response.json() == {"data": [1, 2]}

    missing = await client.get("/api/cache", params={"key": "nope"})
    assert missing.status_code == 404
    assert missing.json() == {"error": "Cache entry not found"}


async def test_get_expired_key_is_not_found(client, clock):
    await client.post("/api/cache", json={"key": "k", "data": 1, "type": "api_response", "ttlMinutes": 1})
    clock.advance(minutes=2)

    response = await client.get("/api/cache", params={"key": "k"})
    assert response.status_code == 404


async def test_get_user_scoped_key(client):
    await client.post("/api/cache", json={"key": "k", "data": "mine", "type": "user_data", "userId": 3})

    assert (await client.get("/api/cache", params={"key": "k"})).status_code == 404
    response = await client.get("/api/cache", params={"key": "k", "userId": 3})
    assert response.json() == {"data": "mine"}


async def test_stats(client):
    await client.post("/api/cache", json={"key": "a", "data": 1, "type": "api_response"})
    await client.get("/api/cache", params={"key": "a"})

    response = await client.get("/api/cache", params={"stats": "true"})
    data = response.json()["data"]
    assert data["total_entries"] == 1
    assert data["hit_rate"] == 1
    assert data["expired_entries"] == 0


async def test_list_with_pagination(client):
    for i in range(3):
        await client.post("/api/cache", json={"key": f"k{i}", "data": i, "type": "api_response", "userId": 1})

    response = await client.get("/api/cache", params={"userId": 1, "page": 2, "limit": 2})
    body = response.json()
    assert len(body["data"]) == 1
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}


async def test_delete_requires_a_target(client):
    response = await client.delete("/api/cache")
    assert response.status_code == 400
    assert response.json() == {"error": "Key or cleanup parameter required"}


async def test_delete_by_key(client):
    await client.post("/api/cache", json={"key": "k", "data": 1, "type": "api_response"})

    response = await client.delete("/api/cache", params={"key": "k"})
    assert response.json() == {"message": "Cache entry deleted successfully"}

    again = await client.delete("/api/cache", params={"key": "k"})
    assert again.status_code == 404


async def test_delete_cleanup_and_user(client, clock):
    await client.post("/api/cache", json={"key": "old", "data": 1, "type": "api_response", "ttlMinutes": 1})
    await client.post("/api/cache", json={"key": "u1", "data": 1, "type": "api_response", "userId": 9})
    await client.post("/api/cache", json={"key": "u2", "data": 1, "type": "api_response", "userId": 9})
    clock.advance(minutes=5)

    cleanup = await client.delete("/api/cache", params={"cleanup": "true"})
    assert cleanup.json() == {"message": "Cleaned up 1 expired cache entries"}

    per_user = await client.delete("/api/cache", params={"userId": 9})
    assert per_user.json() == {"message": "Deleted 2 cache entries for user"}


async def test_post_rejects_unknown_type(client):
    response = await client.post("/api/cache", json={"key": "k", "data": 1, "type": "blob"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid cache type: blob"}


async def test_malformed_body_is_a_validation_error(client):
    response = await client.post("/api/cache", json={"key": 5, "data": 1, "type": "api_response"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid key: Input should be a valid string"}


async def test_non_integer_user_id_is_a_validation_error(client):
    response = await client.get("/api/cache", params={"key": "k", "userId": "abc"})
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid userId:")


async def test_null_data_is_missing_but_falsy_data_is_stored(client):
    null = await client.post("/api/cache", json={"key": "k", "data": None, "type": "api_response"})
    assert null.status_code == 400

    for value in (0, "", False, []):
        stored = await client.post("/api/cache", json={"key": "k", "data": value, "type": "api_response"})
        assert stored.status_code in (200, 201)
        assert (await client.get("/api/cache", params={"key": "k"})).json() == {"data": value}

"""SimulationClient against a local aiohttp server."""

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from core.exceptions import UpstreamError
from services.simulation_client import SimulationClient


async def slow_health(request):
    await asyncio.sleep(3)
    return web.json_response({"status": "ok"})


async def garbled_ping(request):
    return web.Response(text="<html>proxy error</html>", content_type="text/html")


async def failing_run(request):
    return web.json_response({"detail": "Solver diverged"}, status=500)


async def user_stats(request):
    return web.json_response({"project_count": 1, "auth": request.headers.get("Authorization")})


@pytest.fixture
async def upstream():
    app = web.Application()
    app.router.add_get("/health", slow_health)
    app.router.add_get("/fuseki/ping", garbled_ping)
    app.router.add_post("/workflows/sofc/run", failing_run)
    app.router.add_get("/user/stats", user_stats)

    server = test_utils.TestServer(app)
    await server.start_server()
    yield str(server.make_url("/"))
    await server.close()


async def test_timeout_becomes_upstream_error(upstream):
    client = SimulationClient(upstream, timeout=1)

    with pytest.raises(UpstreamError) as exc_info:
        await client.health_check()
    assert "timed out" in exc_info.value.message


async def test_non_json_body_becomes_upstream_error(upstream):
    client = SimulationClient(upstream)

    with pytest.raises(UpstreamError) as exc_info:
        await client.fuseki_ping()
    assert exc_info.value.status_code == 502


async def test_error_status_carries_upstream_detail(upstream):
    client = SimulationClient(upstream)

    with pytest.raises(UpstreamError) as exc_info:
        await client.run_sofc_workflow({})
    assert exc_info.value.message == "Solver diverged"
    assert exc_info.value.upstream_status == 500


async def test_bearer_token_is_forwarded(upstream):
    client = SimulationClient(upstream)

    body = await client.get_user_stats("tok-123")
    assert body == {"project_count": 1, "auth": "Bearer tok-123"}


async def test_unreachable_host_becomes_upstream_error():
    client = SimulationClient("http://127.0.0.1:1", timeout=2)

    with pytest.raises(UpstreamError):
        await client.health_check()

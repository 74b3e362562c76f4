"""
Shared pytest fixtures.

Each test gets its own SQLite file, a controllable clock and a stubbed
simulation API. HTTP tests drive the FastAPI app in-process through
httpx's ASGI transport with container providers overridden.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from dependency_injector import providers

# Set test environment variables before importing app modules
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only-0123456789"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CACHE_CLEANUP_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_FORMAT"] = "console"

from core.cache import CacheStore  # noqa: E402
from core.config import Settings  # noqa: E402
from core.container import container  # noqa: E402
from core.database import Database  # noqa: E402
from core.exceptions import UpstreamError  # noqa: E402
from services.sessions import SessionService  # noqa: E402
from services.stats_events import StatsEventBus  # noqa: E402


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class StubSimulationClient:
    """Records calls and answers with canned payloads.

    Set ``fail`` to a method name to make that call raise ``UpstreamError``.
    """

    def __init__(self):
        self.calls: List[Tuple[str, Any]] = []
        self.fail: set = set()
        self.user_stats: Dict[str, Any] = {
            "project_count": 3,
            "simulation_count": 7,
            "last_activity": "SOFC simulation completed",
            "completed_projects": 2,
        }

    def _record(self, name: str, payload: Any = None) -> None:
        self.calls.append((name, payload))
        if name in self.fail:
            raise UpstreamError(f"{name} failed", upstream_status=500)

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def health_check(self):
        self._record("health_check")
        return {"status": "ok"}

    async def fuseki_ping(self):
        self._record("fuseki_ping")
        return {"ok": True}

    async def ingest_microstructure(self, payload):
        self._record("ingest_microstructure", payload)
        return {"status": "ingested", "id": payload["id"]}

    async def run_sofc_workflow(self, payload):
        self._record("run_sofc_workflow", payload)
        return {"kpis": [{"name": "power_density", "value": 0.42}], "run": "run-001"}

    async def load_rdf(self, data, format="turtle"):
        self._record("load_rdf", {"data": data, "format": format})
        return {"loaded": True}

    async def get_workflow_run(self, run):
        self._record("get_workflow_run", run)
        return {"run": run, "triples": [{"s": run, "p": "hasKPI", "o": "0.42"}]}

    async def get_user_stats(self, token):
        self._record("get_user_stats", token)
        return dict(self.user_stats)

    async def update_user_stats(self, stats, token):
        self._record("update_user_stats", stats)
        return {"success": True}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path}/test.db",
        jwt_secret_key="test-secret-key-for-testing-only-0123456789",
        bcrypt_rounds=4,
        cache_cleanup_enabled=False,
    )


@pytest.fixture
async def database(settings):
    db = Database(settings)
    await db.startup()
    yield db
    await db.shutdown()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(database, clock) -> CacheStore:
    return CacheStore(database, clock=clock)


@pytest.fixture
def sessions(database, settings, clock) -> SessionService:
    return SessionService(database, settings, clock=clock)


@pytest.fixture
def simulation() -> StubSimulationClient:
    return StubSimulationClient()


@pytest.fixture
def stats_events() -> StatsEventBus:
    return StatsEventBus()


@pytest.fixture
async def client(settings, database, store, simulation, stats_events):
    """HTTP client for the app wired to the per-test database and stubs."""
    overrides = [
        (container.settings, settings),
        (container.database, database),
        (container.cache, store),
        (container.simulation_client, simulation),
        (container.stats_events, stats_events),
    ]
    for provider, value in overrides:
        provider.override(providers.Object(value))

    from main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

    for provider, _ in overrides:
        provider.reset_override()


@pytest.fixture
async def auth_headers(client) -> Dict[str, str]:
    """Register and log in a user; returns the bearer header."""
    await client.post("/api/auth/register", json={
        "username": "alice",
        "email": "alice@example.org",
        "password": "correct horse",
        "institute_name": "SINTEF",
    })
    response = await client.post("/api/auth/login", json={
        "username": "alice",
        "password": "correct horse",
    })
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}

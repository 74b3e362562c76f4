"""Database health routes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from core.cache import CacheStore
from core.container import container
from core.database import Database
from core.health import get_detailed_health, get_health_status
from services.sessions import SessionService

router = APIRouter(prefix="/api/health", tags=["health"])


def get_database() -> Database:
    return container.database()


def get_cache_store() -> CacheStore:
    return container.cache()


def get_session_service() -> SessionService:
    return container.session_service()


def _respond(payload: dict) -> JSONResponse:
    status_code = 200 if payload["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=payload)


@router.get("")
async def health(database: Database = Depends(get_database)):
    """Connectivity, table counts and process info. 503 when unhealthy."""
    return _respond(await get_health_status(database))


@router.post("")
async def detailed_health(
    database: Database = Depends(get_database),
    cache: CacheStore = Depends(get_cache_store),
    sessions: SessionService = Depends(get_session_service)
):
    """Write/read probe plus maintenance counters. 503 when unhealthy."""
    return _respond(await get_detailed_health(database, cache, sessions))

"""Dashboard routes: user statistics, system health and live stats updates."""

from typing import Optional

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, Field

from core.container import container
from core.exceptions import APIError, InternalError, ValidationError
from core.logging import get_logger
from services.dashboard import DashboardService
from services.stats_events import StatsUpdate

logger = get_logger(__name__)
router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])
ws_router = APIRouter(tags=["dashboard"])


class StatsUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_count: Optional[int] = Field(default=None, alias="projectCount")
    simulation_count: Optional[int] = Field(default=None, alias="simulationCount")
    last_activity: Optional[str] = Field(default=None, alias="lastActivity")
    completed_projects: Optional[int] = Field(default=None, alias="completedProjects")


def get_dashboard_service() -> DashboardService:
    return container.dashboard_service()


@router.get("/stats")
async def get_stats(
    request: Request,
    refresh: bool = False,
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    """Statistics for the authenticated user. ``?refresh=true`` bypasses the cache."""
    try:
        stats = await dashboard.get_user_stats(
            request.state.user_id, request.state.token, use_cache=not refresh
        )
    except APIError:
        raise
    except Exception as e:
        logger.error("Error fetching user stats", user_id=request.state.user_id, error=str(e))
        raise InternalError()
    return {"data": stats}


@router.get("/system")
async def get_system(
    request: Request,
    refresh: bool = False,
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    try:
        health = await dashboard.get_system_health(use_cache=not refresh)
    except APIError:
        raise
    except Exception as e:
        logger.error("Error checking system health", user_id=request.state.user_id, error=str(e))
        raise InternalError()
    return {"data": health}


@router.post("/stats/update")
async def update_stats(
    body: StatsUpdateRequest,
    request: Request,
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    """Push changes upstream, drop the cached stats and notify live listeners."""
    changes = body.model_dump(by_alias=True, exclude_none=True)
    if not changes:
        raise ValidationError("No statistics to update")

    notified = await dashboard.update_user_stats(
        request.state.user_id, changes, request.state.token
    )
    return {"success": True, "changes": changes, "notified": notified}


@ws_router.websocket("/ws/dashboard")
async def dashboard_websocket(websocket: WebSocket, token: Optional[str] = None):
    """Stream ``stats_updated`` messages for the token's user."""
    user_auth = container.user_auth_service()
    payload = user_auth.verify_token(token) if token else None
    session_id = payload.get("sid") if payload else None

    if not payload or not payload.get("sub") or (
        session_id and not await user_auth.sessions.is_session_active(session_id)
    ):
        await websocket.close(code=4001, reason="Invalid or expired token")
        return

    user_id = int(payload["sub"])
    await websocket.accept()

    async def forward(update: StatsUpdate) -> None:
        if update.user_id == user_id:
            await websocket.send_json(update.to_message())

    events = container.stats_events()
    unsubscribe = await events.subscribe(forward)
    logger.info("Dashboard client connected", user_id=user_id)

    try:
        await websocket.send_json({"type": "connected", "data": {"user_id": user_id}})
        while True:
            message = await websocket.receive_json()
            if message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info("Dashboard client disconnected", user_id=user_id)
    finally:
        await unsubscribe()

"""Bearer-token middleware for route protection."""

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.logging import get_logger

logger = get_logger(__name__)

# Path prefixes that require a valid bearer token; everything else is public
PROTECTED_PREFIXES = (
    "/api/dashboard",
    "/api/workflows",
)


def bearer_token(request: Request) -> str:
    """Token from ``Authorization: Bearer <token>``, or an empty string."""
    header = request.headers.get("authorization", "")
    if not header.startswith("Bearer "):
        return ""
    return header[len("Bearer "):].strip()


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware to protect routes requiring authentication."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if not self._is_protected_path(path):
            return await call_next(request)

        token = bearer_token(request)
        if not token:
            return JSONResponse(
                status_code=401,
                content={"detail": "Authorization header required"}
            )

        user_auth = container.user_auth_service()
        payload = user_auth.verify_token(token)

        if not payload or not payload.get("sub"):
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid or expired token"}
            )

        session_id = payload.get("sid")
        if session_id and not await user_auth.sessions.is_session_active(session_id):
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid or expired token"}
            )

        if session_id:
            await user_auth.sessions.touch(session_id)

        # Attach user info to request state for downstream handlers
        request.state.user_id = int(payload["sub"])
        request.state.username = payload.get("username")
        request.state.session_id = session_id
        request.state.token = token

        return await call_next(request)

    def _is_protected_path(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in PROTECTED_PREFIXES)

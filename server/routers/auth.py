"""Authentication routes for registration, login and the current user."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from core.container import container
from core.logging import get_logger
from middleware.auth import bearer_token
from services.preferences import PreferencesService
from services.user_auth import UserAuthService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    institute_name: Optional[str] = None


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


def get_user_auth_service() -> UserAuthService:
    return container.user_auth_service()


def get_preferences_service() -> PreferencesService:
    return container.preferences_service()


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """Register a new user, creating the institute on first use."""
    if not (request.username and request.email and request.password and request.institute_name):
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: username, email, password, institute_name"
        )

    try:
        user, error = await user_auth.register(
            username=request.username,
            email=request.email,
            password=request.password,
            institute_name=request.institute_name
        )
    except Exception as e:
        logger.error("Registration error", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    if error:
        raise HTTPException(status_code=409, detail=error)

    return {
        "message": "User created successfully",
        "user": user.to_public_dict()
    }


@router.post("/login")
async def login(
    request: LoginRequest,
    http_request: Request,
    user_auth: UserAuthService = Depends(get_user_auth_service),
    preferences: PreferencesService = Depends(get_preferences_service)
):
    """
    Login with username (or email) and password.
    Returns a bearer token bound to a new session.
    """
    if not request.username or not request.password:
        raise HTTPException(status_code=400, detail="Missing required fields: username, password")

    try:
        user, token, error = await user_auth.login(
            identifier=request.username,
            password=request.password,
            user_agent=http_request.headers.get("user-agent"),
            ip_address=_client_ip(http_request)
        )
        if user:
            await preferences.touch_last_login(user.id)
    except Exception as e:
        logger.error("Login error", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    if error:
        raise HTTPException(status_code=401, detail=error)

    return {
        "access_token": token,
        "token_type": "Bearer",
        "user_id": user.id,
        "institute_id": user.institute_id
    }


@router.post("/logout")
async def logout(
    http_request: Request,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """Close the session bound to the bearer token."""
    token = bearer_token(http_request)
    if not token:
        raise HTTPException(status_code=401, detail="Authorization header required")

    closed = await user_auth.logout(token, ip_address=_client_ip(http_request))
    return {"success": closed}


@router.get("/me")
async def get_current_user(
    http_request: Request,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """Current user for the bearer token."""
    token = bearer_token(http_request)
    if not token:
        raise HTTPException(status_code=401, detail="Authorization header required")

    try:
        user, reason = await user_auth.get_current_user(token)
    except Exception as e:
        logger.error("Get current user error", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    if reason == "invalid":
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if reason == "missing":
        raise HTTPException(status_code=404, detail="User not found")

    return user.to_public_dict()

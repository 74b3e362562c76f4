"""User preference routes."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from core.container import container
from core.exceptions import APIError, ConflictError, InternalError, NotFoundError, ValidationError
from core.logging import get_logger
from services.preferences import PreferencesService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/user-preferences", tags=["preferences"])


class PreferencesCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(default=None, alias="userId")
    username: Optional[str] = None
    email: Optional[str] = None
    institute_id: Optional[int] = None


class PreferencesUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(default=None, alias="userId")
    preferences: Optional[Dict[str, Any]] = None


def get_preferences_service() -> PreferencesService:
    return container.preferences_service()


@router.get("")
async def get_preferences(
    user_id: Optional[int] = Query(default=None, alias="userId"),
    service: PreferencesService = Depends(get_preferences_service)
):
    if user_id is None:
        raise ValidationError("User ID is required")

    try:
        preferences = await service.get(user_id)
    except Exception as e:
        logger.error("Error fetching user preferences", user_id=user_id, error=str(e))
        raise InternalError()

    if preferences is None:
        raise NotFoundError("User preferences not found")
    return {"data": preferences.to_dict()}


@router.post("", status_code=201)
async def create_preferences(
    request: PreferencesCreateRequest,
    service: PreferencesService = Depends(get_preferences_service)
):
    if not (request.user_id and request.username and request.email and request.institute_id):
        raise ValidationError("Missing required fields: userId, username, email, institute_id")

    try:
        preferences = await service.create(
            request.user_id, request.username, request.email, request.institute_id
        )
    except Exception as e:
        logger.error("Error creating user preferences", user_id=request.user_id, error=str(e))
        raise InternalError()

    if preferences is None:
        raise ConflictError("User preferences already exist")
    return {"data": preferences.to_dict()}


@router.put("")
async def update_preferences(
    request: PreferencesUpdateRequest,
    service: PreferencesService = Depends(get_preferences_service)
):
    if request.user_id is None:
        raise ValidationError("User ID is required")

    try:
        preferences = await service.update(request.user_id, request.preferences)
    except Exception as e:
        logger.error("Error updating user preferences", user_id=request.user_id, error=str(e))
        raise InternalError()

    if preferences is None:
        raise NotFoundError("User preferences not found")
    return {"data": preferences.to_dict()}


@router.delete("")
async def delete_preferences(
    user_id: Optional[int] = Query(default=None, alias="userId"),
    service: PreferencesService = Depends(get_preferences_service)
):
    if user_id is None:
        raise ValidationError("User ID is required")

    try:
        deleted = await service.delete(user_id)
    except APIError:
        raise
    except Exception as e:
        logger.error("Error deleting user preferences", user_id=user_id, error=str(e))
        raise InternalError()

    if not deleted:
        raise NotFoundError("User preferences not found")
    return {"message": "User preferences deleted successfully"}

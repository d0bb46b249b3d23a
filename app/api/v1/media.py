"""
Media bucket endpoints
"""
from fastapi import APIRouter, Depends, status

from app.core.dependencies import get_current_user
from app.models.user import User
from app.services.storage_service import storage_service

router = APIRouter(prefix="/media", tags=["media"])


@router.delete("/{key:path}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_object(
    key: str,
    current_user: User = Depends(get_current_user)
):
    """Delete one of the caller's uploads; keys are ``{user_id}/{file}``"""
    storage_service.delete_object(current_user.id, key)

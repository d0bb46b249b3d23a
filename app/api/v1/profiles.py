"""
Profile endpoints
"""
from uuid import UUID
from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.dependencies import get_current_user
from app.core.rate_limit import limiter
from app.database import get_db
from app.models.user import User
from app.schemas.profile import (
    ProfileCreate,
    ProfileResponse,
    ProfileSearchResponse,
    ProfileUpdate,
)
from app.services.profile_service import profile_service
from app.services.storage_service import UploadKind, read_upload

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    request: ProfileCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create the caller's profile"""
    return profile_service.create_profile(
        db,
        current_user.id,
        request.username,
        bio=request.bio,
        gender=request.gender,
        date_of_birth=request.date_of_birth
    )


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return profile_service.get_profile(db, current_user.id, current_user.id)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    request: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update the fields that were sent"""
    fields = request.model_dump(exclude_unset=True)
    return profile_service.update_profile(db, current_user.id, fields)


@router.post("/me/avatar", response_model=ProfileResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Upload an avatar image (max 5MB) and set it on the caller's profile"""
    data = await read_upload(file, UploadKind.AVATAR)
    return profile_service.upload_avatar(db, current_user.id, file.filename, file.content_type, data)


@router.get("/search", response_model=ProfileSearchResponse)
@limiter.limit(settings.SEARCH_RATE_LIMIT)
async def search_profiles(
    request: Request,
    q: str = Query(..., min_length=1, max_length=50, description="Username substring"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Find users by username, whether or not a friendship exists"""
    results = profile_service.search_profiles(db, current_user.id, q)
    return ProfileSearchResponse(results=results, count=len(results))


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Profile of another user; visible once any friendship row links you"""
    return profile_service.get_profile(db, current_user.id, user_id)

"""
Social/Friends API endpoints
"""
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.core.dependencies import get_current_user
from app.core.exceptions import NotFoundError
from app.schemas.social import (
    FriendRequestCreate,
    FriendRequestRespond,
    FriendshipResponse,
    FriendListResponse,
    PendingRequestsResponse,
    FriendActionResponse,
)
from app.services.social_service import social_service

router = APIRouter(prefix="/social", tags=["social"])


@router.get("/friends", response_model=FriendListResponse)
async def get_friends(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get current user's friends list, most recent conversation first"""
    return social_service.get_friends(db, current_user.id)


@router.get("/requests", response_model=PendingRequestsResponse)
async def get_pending_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get pending friend requests (incoming and outgoing)"""
    return social_service.get_pending_requests(db, current_user.id)


@router.post("/friends/request", response_model=FriendActionResponse, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    request: FriendRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Send a friend request to another user"""
    friendship = social_service.send_friend_request(db, current_user.id, request.addressee_id)
    return FriendActionResponse(
        success=True,
        message="Friend request sent",
        friendship_id=friendship.id,
        status=friendship.status
    )


@router.post("/friends/respond/{request_id}", response_model=FriendActionResponse)
async def respond_to_friend_request(
    request_id: UUID,
    request: FriendRequestRespond,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Accept or decline a friend request addressed to you"""
    friendship = social_service.respond_to_friend_request(db, current_user.id, request_id, request.accept)
    if friendship is None:
        return FriendActionResponse(success=True, message="Friend request declined")
    return FriendActionResponse(
        success=True,
        message="Friend request accepted",
        friendship_id=friendship.id,
        status=friendship.status
    )


@router.post("/friends/cancel/{request_id}", response_model=FriendActionResponse)
async def cancel_friend_request(
    request_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Cancel a sent friend request"""
    social_service.cancel_friend_request(db, current_user.id, request_id)
    return FriendActionResponse(
        success=True,
        message="Friend request cancelled"
    )


@router.delete("/friends/{friend_id}", response_model=FriendActionResponse)
async def remove_friend(
    friend_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Remove a friend, together with your conversation"""
    social_service.remove_friendship(db, current_user.id, friend_id)
    return FriendActionResponse(
        success=True,
        message="Friend removed"
    )


@router.post("/block/{user_id}", response_model=FriendActionResponse)
async def block_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Block a user you have a relationship with"""
    friendship = social_service.block_user(db, current_user.id, user_id)
    return FriendActionResponse(
        success=True,
        message="User blocked",
        friendship_id=friendship.id,
        status=friendship.status
    )


@router.get("/relationship/{user_id}", response_model=FriendshipResponse)
async def get_relationship(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """The friendship row between you and another user"""
    friendship = social_service.get_relationship(db, current_user.id, user_id)
    if friendship is None:
        raise NotFoundError("Friendship not found")
    return friendship

"""
Social and friends schemas
"""
from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel

from app.models.enums import FriendshipStatus, MediaType


class FriendRequestCreate(BaseModel):
    """Create friend request"""
    addressee_id: UUID


class FriendRequestRespond(BaseModel):
    """Accept or decline a pending request"""
    accept: bool


class FriendshipResponse(BaseModel):
    """Friendship row"""
    id: UUID
    requester_id: UUID
    addressee_id: UUID
    status: FriendshipStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FriendInfo(BaseModel):
    """Friend basic info, taken from their profile"""
    user_id: UUID
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None


class LastMessagePreview(BaseModel):
    """Most recent message exchanged with a friend"""
    id: UUID
    sender_id: UUID
    content: Optional[str] = None
    media_type: Optional[MediaType] = None
    created_at: datetime


class FriendWithRequestInfo(BaseModel):
    """Friend with friendship and conversation metadata"""
    friend: FriendInfo
    friendship_id: UUID
    since: datetime
    conversation_id: Optional[UUID] = None
    last_message: Optional[LastMessagePreview] = None


class FriendRequestWithUser(BaseModel):
    """Friend request with the other party's info"""
    request_id: UUID
    user: FriendInfo
    status: FriendshipStatus
    created_at: datetime


class FriendListResponse(BaseModel):
    """Response with list of friends"""
    friends: List[FriendWithRequestInfo]
    total_count: int


class PendingRequestsResponse(BaseModel):
    """Response with pending friend requests"""
    incoming: List[FriendRequestWithUser]
    outgoing: List[FriendRequestWithUser]
    incoming_count: int
    outgoing_count: int


class FriendActionResponse(BaseModel):
    """Response after friend action (request/accept/decline/cancel/remove/block)"""
    success: bool
    message: str
    friendship_id: Optional[UUID] = None
    status: Optional[FriendshipStatus] = None

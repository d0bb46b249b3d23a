"""
Notification schemas
"""
from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel

from app.models.enums import NotificationType
from app.schemas.social import FriendInfo


class NotificationResponse(BaseModel):
    """Notification with the originating user's profile, when visible"""
    id: UUID
    type: NotificationType
    from_user_id: Optional[UUID] = None
    friendship_id: Optional[UUID] = None
    is_read: bool
    created_at: datetime
    from_user: Optional[FriendInfo] = None

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int


class MarkReadResponse(BaseModel):
    success: bool
    updated: int = 0

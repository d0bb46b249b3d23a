"""
Database models for Relay Chat Backend

All models should be imported here for Alembic to detect them.
"""
from app.models.enums import FriendshipStatus, Gender, MediaType, NotificationType
from app.models.user import User
from app.models.profile import Profile
from app.models.social import Friendship
from app.models.chat import Conversation, Message
from app.models.notification import Notification

__all__ = [
    # Enums
    "FriendshipStatus",
    "Gender",
    "MediaType",
    "NotificationType",
    # Identity
    "User",
    "Profile",
    # Social
    "Friendship",
    # Chat
    "Conversation",
    "Message",
    # Notifications
    "Notification",
]

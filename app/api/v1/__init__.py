"""
API v1 routes aggregation
"""
from fastapi import APIRouter
from app.api.v1 import auth, profiles, social, conversations, notifications, media

api_router = APIRouter()

# Authentication
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])

# Profiles
api_router.include_router(profiles.router)

# Social/Friends
api_router.include_router(social.router)

# Conversations and messages
api_router.include_router(conversations.router)

# Notifications
api_router.include_router(notifications.router)

# Uploaded media
api_router.include_router(media.router)

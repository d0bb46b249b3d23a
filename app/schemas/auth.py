"""Authentication schemas"""
from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import datetime


class FirebaseAuthRequest(BaseModel):
    """Request to authenticate with Firebase token"""
    firebase_token: str = Field(..., description="Firebase ID token from client")
    username: Optional[str] = Field(None, description="Username for the profile created on first sign-in")


class Token(BaseModel):
    """JWT token response"""
    access_token: str
    token_type: str = "bearer"
    user_id: str
    is_new_user: bool = False


class IdentityResponse(BaseModel):
    """Authenticated identity"""
    id: UUID
    email: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

"""Profile schemas for request/response validation"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import date, datetime
from uuid import UUID

from app.models.enums import Gender


class ProfileCreate(BaseModel):
    """Schema for creating the caller's profile"""
    username: str = Field(..., min_length=1, max_length=255)
    bio: Optional[str] = Field(None, max_length=160)
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None

    @field_validator("gender", mode="before")
    @classmethod
    def blank_gender_is_none(cls, value):
        return value or None


class ProfileUpdate(BaseModel):
    """Schema for updating the caller's profile; only sent fields change"""
    username: Optional[str] = Field(None, min_length=1, max_length=255)
    bio: Optional[str] = Field(None, max_length=160)
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None

    @field_validator("gender", mode="before")
    @classmethod
    def blank_gender_is_none(cls, value):
        return value or None


class ProfileResponse(BaseModel):
    """Full profile as seen by someone allowed to read it"""
    id: UUID
    user_id: UUID
    username: str
    bio: Optional[str] = None
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProfileSearchResult(BaseModel):
    """Minimal projection returned by username search"""
    id: UUID
    user_id: UUID
    username: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None


class ProfileSearchResponse(BaseModel):
    """Username search results"""
    results: List[ProfileSearchResult]
    count: int

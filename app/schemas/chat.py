"""
Conversation and message schemas
"""
from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field

from app.models.enums import MediaType


class MessageCreate(BaseModel):
    """Send a message; text, media or both"""
    content: Optional[str] = Field(None, max_length=10000)
    media_url: Optional[str] = None
    media_type: Optional[MediaType] = None


class MessageUpdate(BaseModel):
    """Edit a message's text"""
    content: str = Field(..., max_length=10000)


class MessageResponse(BaseModel):
    """Message"""
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: Optional[str] = None
    media_url: Optional[str] = None
    media_type: Optional[MediaType] = None
    is_read: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class MessageListResponse(BaseModel):
    """Messages of a conversation, oldest first"""
    messages: List[MessageResponse]
    total_count: int


class ConversationResponse(BaseModel):
    """Conversation"""
    id: UUID
    participant1_id: UUID
    participant2_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ConversationListResponse(BaseModel):
    """Conversations the caller takes part in"""
    conversations: List[ConversationResponse]
    total_count: int

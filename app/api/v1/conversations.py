"""
Conversation and message endpoints
"""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.core.dependencies import get_current_user
from app.schemas.chat import (
    ConversationListResponse,
    ConversationResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
    MessageUpdate,
)
from app.services.chat_service import chat_service
from app.services.storage_service import UploadKind, read_upload

router = APIRouter(tags=["conversations"])


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    conversations = chat_service.list_conversations(db, current_user.id)
    return ConversationListResponse(
        conversations=[ConversationResponse.model_validate(c) for c in conversations],
        total_count=len(conversations)
    )


@router.post("/conversations/with/{user_id}", response_model=ConversationResponse)
async def get_or_create_conversation(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Open the conversation with another user, creating it on first use"""
    return chat_service.get_or_create_conversation(db, current_user.id, current_user.id, user_id)


@router.delete("/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a conversation and all of its messages"""
    chat_service.delete_conversation(db, current_user.id, conversation_id)


@router.get("/conversations/{conversation_id}/messages", response_model=MessageListResponse)
async def list_messages(
    conversation_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Messages of a conversation, oldest first"""
    messages = chat_service.list_messages(db, current_user.id, conversation_id)
    return MessageListResponse(
        messages=[MessageResponse.model_validate(m) for m in messages],
        total_count=len(messages)
    )


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED
)
async def send_message(
    conversation_id: UUID,
    request: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return chat_service.send_message(
        db,
        current_user.id,
        conversation_id,
        content=request.content,
        media_url=request.media_url,
        media_type=request.media_type
    )


@router.post(
    "/conversations/{conversation_id}/media",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED
)
async def send_media_message(
    conversation_id: UUID,
    file: UploadFile = File(...),
    content: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Upload an image or video (max 50MB) and send it"""
    data = await read_upload(file, UploadKind.CHAT_MEDIA)
    return chat_service.send_media_message(
        db,
        current_user.id,
        conversation_id,
        file.filename,
        file.content_type,
        data,
        content=content
    )


@router.patch("/messages/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: UUID,
    request: MessageUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Edit the text of one of your messages"""
    return chat_service.edit_message(db, current_user.id, message_id, request.content)

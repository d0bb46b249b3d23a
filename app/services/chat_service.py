"""
Chat service - two-party conversations and their messages
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.core.exceptions import ConstraintViolationError, NotFoundError, ValidationError
from app.core.policy import Action, PolicyEngine, policy_engine
from app.database import write_transaction
from app.models.chat import Conversation, Message
from app.services.realtime_service import ChangeOperation, change_feed
from app.services.storage_service import StorageService, storage_service

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ChatService:
    """Service for conversations and messages"""

    def __init__(self, policy: PolicyEngine = policy_engine, storage: StorageService = storage_service):
        self.policy = policy
        self.storage = storage

    def find_conversation(self, db: Session, user_id: UUID, user_a: UUID, user_b: UUID) -> Optional[Conversation]:
        """Visible conversation between the two identities, stored in either order"""
        return self.policy.scoped(db, user_id, Conversation).filter(
            or_(
                and_(Conversation.participant1_id == user_a, Conversation.participant2_id == user_b),
                and_(Conversation.participant1_id == user_b, Conversation.participant2_id == user_a)
            )
        ).first()

    def get_or_create_conversation(self, db: Session, user_id: UUID, user_a: UUID, user_b: UUID) -> Conversation:
        """
        Return the conversation between ``user_a`` and ``user_b``, creating it
        as (participant1=user_a, participant2=user_b) when none exists.

        The caller must be one of the two. When a concurrent call inserts the
        same pair first, the losing insert is rolled back and the existing
        row is returned.
        """
        if user_a == user_b:
            raise ValidationError("A conversation needs two different participants")

        conversation = self.find_conversation(db, user_id, user_a, user_b)
        if conversation:
            return conversation

        conversation = Conversation(participant1_id=user_a, participant2_id=user_b)
        self.policy.authorize(db, user_id, Action.INSERT, conversation)

        try:
            with write_transaction(db, "Conversation already exists"):
                db.add(conversation)
                change_feed.stage(db, ChangeOperation.INSERT, conversation)
        except ConstraintViolationError:
            existing = self.find_conversation(db, user_id, user_a, user_b)
            if existing is None:
                raise
            logger.info(f"Conversation {user_a} <-> {user_b} created concurrently, reusing {existing.id}")
            return existing

        db.refresh(conversation)
        logger.info(f"Created conversation {conversation.id} between {user_a} and {user_b}")
        return conversation

    def get_conversation(self, db: Session, user_id: UUID, conversation_id: UUID) -> Conversation:
        conversation = self.policy.get_visible(db, user_id, Conversation, conversation_id)
        if not conversation:
            raise NotFoundError("Conversation not found")
        return conversation

    def list_conversations(self, db: Session, user_id: UUID) -> List[Conversation]:
        return self.policy.scoped(db, user_id, Conversation).order_by(
            Conversation.updated_at.desc()
        ).all()

    def delete_conversation(self, db: Session, user_id: UUID, conversation_id: UUID) -> bool:
        """Delete a conversation and, by cascade, its messages"""
        conversation = self.get_conversation(db, user_id, conversation_id)
        self.policy.authorize(db, user_id, Action.DELETE, conversation)

        with write_transaction(db, "Conversation could not be deleted"):
            change_feed.stage(db, ChangeOperation.DELETE, conversation)
            db.delete(conversation)

        logger.info(f"Conversation {conversation_id} deleted by {user_id}")
        return True

    def send_message(
        self,
        db: Session,
        user_id: UUID,
        conversation_id: UUID,
        content: Optional[str] = None,
        media_url: Optional[str] = None,
        media_type: Optional[str] = None,
    ) -> Message:
        """
        Send a message as the caller.

        Rejected unless the caller takes part in the conversation. A message
        needs text or media; ``media_type`` needs ``media_url``.
        """
        content = _clean(content)
        media_url = _clean(media_url)
        if not content and not media_url:
            raise ValidationError("Message must have content or media")
        if media_type and not media_url:
            raise ValidationError("media_type requires media_url")

        message = Message(
            conversation_id=conversation_id,
            sender_id=user_id,
            content=content,
            media_url=media_url,
            media_type=media_type,
        )
        self.policy.authorize(db, user_id, Action.INSERT, message)

        with write_transaction(db, "Conversation not found"):
            db.add(message)
            change_feed.stage(db, ChangeOperation.INSERT, message)
        db.refresh(message)

        logger.debug(f"Message {message.id} sent to conversation {conversation_id}")
        return message

    def send_media_message(
        self,
        db: Session,
        user_id: UUID,
        conversation_id: UUID,
        filename: Optional[str],
        content_type: Optional[str],
        data: bytes,
        content: Optional[str] = None,
    ) -> Message:
        """Store an image or video and send it as a message"""
        self.get_conversation(db, user_id, conversation_id)
        stored = self.storage.upload_chat_media(user_id, filename, content_type, data)
        return self.send_message(
            db,
            user_id,
            conversation_id,
            content=content,
            media_url=stored.public_url,
            media_type=stored.media_type,
        )

    def list_messages(self, db: Session, user_id: UUID, conversation_id: UUID) -> List[Message]:
        """Messages the caller can see, oldest first"""
        return self.policy.scoped(db, user_id, Message).filter(
            Message.conversation_id == conversation_id
        ).order_by(Message.created_at.asc()).all()

    def edit_message(self, db: Session, user_id: UUID, message_id: UUID, content: str) -> Message:
        """Replace the text of one of the caller's messages"""
        message = self.policy.get_visible(db, user_id, Message, message_id)
        if not message:
            raise NotFoundError("Message not found")
        self.policy.authorize(db, user_id, Action.UPDATE, message)

        content = _clean(content)
        if not content and not message.media_url:
            raise ValidationError("Message must have content or media")

        with write_transaction(db, "Message could not be updated"):
            message.content = content
            change_feed.stage(db, ChangeOperation.UPDATE, message)
        db.refresh(message)

        logger.debug(f"Message {message_id} edited by {user_id}")
        return message


chat_service = ChatService()

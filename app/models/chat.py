"""
Conversation and message models
"""
from uuid import uuid4
from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint, CheckConstraint, Uuid
)
from sqlalchemy.orm import relationship, validates
from app.database import Base
from app.models.enums import MediaType, coerce_enum
from app.models.social import canonical_pair
from app.utils.time_utils import utc_now


class Conversation(Base):
    """Message container scoped to exactly two participants"""
    __tablename__ = "conversations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    participant1_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant2_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pair_low = Column(Uuid(as_uuid=True), nullable=False)
    pair_high = Column(Uuid(as_uuid=True), nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("participant1_id", "participant2_id", name="unique_conversation"),
        UniqueConstraint("pair_low", "pair_high", name="unique_conversation_pair"),
    )

    # Relationships
    messages = relationship(
        "Message", back_populates="conversation",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="Message.created_at"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.participant1_id is not None and self.participant2_id is not None:
            self.pair_low, self.pair_high = canonical_pair(self.participant1_id, self.participant2_id)

    def has_participant(self, user_id) -> bool:
        return user_id in (self.participant1_id, self.participant2_id)

    def other_participant(self, user_id):
        return self.participant2_id if self.participant1_id == user_id else self.participant1_id


class Message(Base):
    """A message inside a conversation; text, media or both"""
    __tablename__ = "messages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    conversation_id = Column(
        Uuid(as_uuid=True), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content = Column(Text, nullable=True)
    media_url = Column(Text, nullable=True)
    media_type = Column(String(16), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)

    __table_args__ = (
        CheckConstraint("media_type IN ('image', 'video')", name="ck_message_media_type"),
    )

    # Relationships
    conversation = relationship("Conversation", back_populates="messages")

    @validates("media_type")
    def _check_media_type(self, key, value):
        member = coerce_enum(MediaType, value, "media type")
        return member.value if member is not None else None

"""
Notification model - events addressed to a single recipient
"""
from uuid import uuid4
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, CheckConstraint, Uuid
from sqlalchemy.orm import relationship, validates
from app.database import Base
from app.models.enums import NotificationType, coerce_enum
from app.utils.time_utils import utc_now


class Notification(Base):
    """Notification for ``user_id``, optionally about a friendship"""
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String(50), nullable=False)
    from_user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    friendship_id = Column(
        Uuid(as_uuid=True), ForeignKey("friendships.id", ondelete="CASCADE"), nullable=True, index=True
    )
    is_read = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint("type IN ('friend_request')", name="ck_notification_type"),
    )

    # Relationships
    friendship = relationship("Friendship", back_populates="notifications")

    @validates("type")
    def _check_type(self, key, value):
        member = coerce_enum(NotificationType, value, "notification type")
        return member.value if member is not None else None

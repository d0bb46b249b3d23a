"""
Social features models - Friendships and friend requests
"""
from uuid import uuid4
from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Uuid
from sqlalchemy.orm import relationship, validates
from app.database import Base
from app.models.enums import FriendshipStatus, coerce_enum, db_enum
from app.utils.time_utils import utc_now


def canonical_pair(a, b):
    """Order two identities so (a, b) and (b, a) map to the same key"""
    return (a, b) if a <= b else (b, a)


class Friendship(Base):
    """Directed friendship edge (requester -> addressee) with a status"""
    __tablename__ = "friendships"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    requester_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    addressee_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Unordered pair, so a reversed-order request collides at the store
    pair_low = Column(Uuid(as_uuid=True), nullable=False)
    pair_high = Column(Uuid(as_uuid=True), nullable=False)

    status = Column(db_enum(FriendshipStatus, "friendship_status"), nullable=False, default=FriendshipStatus.PENDING)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("requester_id", "addressee_id", name="unique_friendship"),
        UniqueConstraint("pair_low", "pair_high", name="unique_friendship_pair"),
        CheckConstraint("requester_id <> addressee_id", name="ck_friendship_not_self"),
    )

    # Relationships
    requester = relationship("User", foreign_keys=[requester_id])
    addressee = relationship("User", foreign_keys=[addressee_id])
    notifications = relationship(
        "Notification", back_populates="friendship",
        cascade="all, delete-orphan", passive_deletes=True
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.requester_id is not None and self.addressee_id is not None:
            self.pair_low, self.pair_high = canonical_pair(self.requester_id, self.addressee_id)

    @validates("status")
    def _check_status(self, key, value):
        return coerce_enum(FriendshipStatus, value, "friendship status")

    def involves(self, user_id) -> bool:
        return user_id in (self.requester_id, self.addressee_id)

    def other_party(self, user_id):
        return self.addressee_id if self.requester_id == user_id else self.requester_id

    def __repr__(self):
        return f"<Friendship {self.requester_id}->{self.addressee_id} {self.status}>"

"""
Profile model - one per identity
"""
from uuid import uuid4
from sqlalchemy import Column, String, Date, DateTime, Text, ForeignKey, Uuid
from sqlalchemy.orm import relationship, validates
from app.core.exceptions import ValidationError
from app.database import Base
from app.models.enums import Gender, coerce_enum, db_enum
from app.utils.time_utils import utc_now
from app.utils.usernames import normalize_username

BIO_MAX_LENGTH = 160


class Profile(Base):
    """Public-facing profile attached to an identity"""
    __tablename__ = "profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        unique=True, nullable=False, index=True
    )
    username = Column(String(255), unique=True, nullable=False, index=True)
    bio = Column(Text, nullable=True)
    gender = Column(db_enum(Gender, "gender_type"), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    avatar_url = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    # Relationships
    user = relationship("User", back_populates="profile")

    @validates("username")
    def _normalize_username(self, key, value):
        return normalize_username(value)

    @validates("bio")
    def _check_bio(self, key, value):
        if value is None:
            return None
        value = value.strip()
        if len(value) > BIO_MAX_LENGTH:
            raise ValidationError(f"Bio must be at most {BIO_MAX_LENGTH} characters")
        return value or None

    @validates("gender")
    def _check_gender(self, key, value):
        return coerce_enum(Gender, value, "gender")

    def __repr__(self):
        return f"<Profile {self.username}>"

"""
Identity model - the local mirror of an identity issued by Firebase Auth
"""
from uuid import uuid4
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.time_utils import utc_now


class User(Base):
    """Authenticated identity; every policy check is evaluated against ``User.id``"""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    firebase_uid = Column(String(255), unique=True, nullable=True, index=True)
    email = Column(String(255), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    # Relationships (rows are removed by ON DELETE CASCADE in the database)
    profile = relationship(
        "Profile", back_populates="user", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<User {self.id}>"

"""
Profile service - creation, visibility-scoped reads, updates and username search
"""
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ConstraintViolationError, NotFoundError, ValidationError
from app.core.policy import Action, PolicyEngine, policy_engine
from app.database import write_transaction
from app.models.profile import Profile
from app.models.user import User
from app.schemas.profile import ProfileSearchResult
from app.services.realtime_service import ChangeOperation, change_feed
from app.services.storage_service import StorageService, storage_service
from app.utils.usernames import escape_like, normalize_username

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("username", "bio", "gender", "date_of_birth", "avatar_url")


class ProfileService:
    """Service for profile operations"""

    def __init__(self, policy: PolicyEngine = policy_engine, storage: StorageService = storage_service):
        self.policy = policy
        self.storage = storage

    def _ensure_username_free(self, db: Session, username: str, owner_id: UUID) -> None:
        # Uniqueness is global: checked against every profile, not only visible ones
        taken = db.query(Profile.id).filter(
            Profile.username == username,
            Profile.user_id != owner_id
        ).first()
        if taken:
            raise ConstraintViolationError("Username already taken")

    def create_profile(
        self,
        db: Session,
        caller_id: UUID,
        username: str,
        bio: Optional[str] = None,
        gender: Optional[str] = None,
        date_of_birth=None,
        avatar_url: Optional[str] = None,
    ) -> Profile:
        """Create the caller's profile (done once, at signup)"""
        normalized = normalize_username(username)
        if db.query(User.id).filter(User.id == caller_id).first() is None:
            raise NotFoundError("User not found")
        if db.query(Profile.id).filter(Profile.user_id == caller_id).first():
            raise ConstraintViolationError("Profile already exists")
        self._ensure_username_free(db, normalized, caller_id)

        profile = Profile(
            user_id=caller_id,
            username=normalized,
            bio=bio,
            gender=gender,
            date_of_birth=date_of_birth,
            avatar_url=avatar_url,
        )
        self.policy.authorize(db, caller_id, Action.INSERT, profile)

        with write_transaction(db, "Username already taken"):
            db.add(profile)
            change_feed.stage(db, ChangeOperation.INSERT, profile)
        db.refresh(profile)

        logger.info(f"Created profile {profile.username} for user {caller_id}")
        return profile

    def get_profile(self, db: Session, caller_id: UUID, user_id: UUID) -> Profile:
        """
        Read a profile through the select policy.

        Visible when it is the caller's own, or when any friendship row
        (pending, accepted or blocked) links the caller and the owner.
        """
        profile = self.policy.scoped(db, caller_id, Profile).filter(Profile.user_id == user_id).first()
        if not profile:
            raise NotFoundError("Profile not found")
        return profile

    def get_profiles(self, db: Session, caller_id: UUID, user_ids: List[UUID]) -> Dict[UUID, Profile]:
        """Visible profiles for the given identities, keyed by identity"""
        if not user_ids:
            return {}
        profiles = self.policy.scoped(db, caller_id, Profile).filter(Profile.user_id.in_(user_ids)).all()
        return {profile.user_id: profile for profile in profiles}

    def update_profile(self, db: Session, caller_id: UUID, fields: Dict[str, Any]) -> Profile:
        """Update the caller's own profile; username uniqueness is re-validated"""
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        profile = self.get_profile(db, caller_id, caller_id)
        self.policy.authorize(db, caller_id, Action.UPDATE, profile)

        with write_transaction(db, "Username already taken"):
            if "username" in fields:
                normalized = normalize_username(fields["username"])
                if normalized != profile.username:
                    self._ensure_username_free(db, normalized, caller_id)
                fields = {**fields, "username": normalized}
            for name, value in fields.items():
                setattr(profile, name, value)
            change_feed.stage(db, ChangeOperation.UPDATE, profile)
        db.refresh(profile)

        logger.info(f"Updated profile for user {caller_id}: {sorted(fields)}")
        return profile

    def upload_avatar(
        self, db: Session, caller_id: UUID, filename: Optional[str], content_type: Optional[str], data: bytes
    ) -> Profile:
        """Store an avatar image and point the caller's profile at it"""
        self.get_profile(db, caller_id, caller_id)
        stored = self.storage.upload_avatar(caller_id, filename, content_type, data)
        return self.update_profile(db, caller_id, {"avatar_url": stored.public_url})

    def search_profiles(
        self, db: Session, caller_id: UUID, query: str, limit: Optional[int] = None
    ) -> List[ProfileSearchResult]:
        """
        Username search for discovery.

        Runs outside the profile select policy so that strangers can be
        found before any friendship exists, and therefore only exposes a
        fixed projection: id, user_id, username, avatar_url and bio.
        Case-insensitive substring match, caller excluded, capped.
        """
        term = (query or "").strip()
        if not term:
            return []
        limit = min(limit or settings.SEARCH_RESULT_LIMIT, settings.SEARCH_RESULT_LIMIT)

        rows = db.query(
            Profile.id,
            Profile.user_id,
            Profile.username,
            Profile.avatar_url,
            Profile.bio,
        ).filter(
            Profile.username.ilike(f"%{escape_like(term)}%", escape="\\"),
            Profile.user_id != caller_id
        ).order_by(
            Profile.username
        ).limit(limit).all()

        return [
            ProfileSearchResult(
                id=row.id,
                user_id=row.user_id,
                username=row.username,
                avatar_url=row.avatar_url,
                bio=row.bio,
            )
            for row in rows
        ]


profile_service = ProfileService()

"""
Authentication Service - Firebase verification and JWT management
"""
import firebase_admin
from firebase_admin import auth, credentials
from typing import Dict, Optional, Tuple
from uuid import UUID, uuid4
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.exceptions import ConstraintViolationError, ValidationError
from app.core.security import create_access_token
from app.database import write_transaction
from app.models.profile import Profile
from app.models.user import User
from app.services.profile_service import profile_service
from app.utils.usernames import normalize_username
import logging
import os

logger = logging.getLogger(__name__)


def _ensure_firebase_initialized():
    """
    Ensure Firebase Admin SDK is initialized before use
    Raises RuntimeError if not initialized
    """
    if not firebase_admin._apps:
        if os.path.exists(settings.GOOGLE_APPLICATION_CREDENTIALS):
            try:
                cred = credentials.Certificate(settings.GOOGLE_APPLICATION_CREDENTIALS)
                firebase_admin.initialize_app(cred, {"projectId": settings.FIREBASE_PROJECT_ID})
                logger.info("Firebase Admin SDK initialized successfully")
            except Exception as e:
                logger.error(f"Failed to initialize Firebase Admin SDK: {e}")
                raise RuntimeError(
                    f"Firebase Admin SDK initialization failed: {e}\n"
                    f"Check that {settings.GOOGLE_APPLICATION_CREDENTIALS} is valid."
                )
        else:
            raise RuntimeError(
                f"Firebase Admin SDK not initialized and credentials file not found: {settings.GOOGLE_APPLICATION_CREDENTIALS}"
            )


def verify_firebase_token(id_token: str) -> Dict:
    """
    Verify Firebase ID token and return decoded token

    Raises:
        ValueError: If token is invalid or expired
        RuntimeError: If Firebase Admin SDK not initialized
    """
    _ensure_firebase_initialized()

    try:
        decoded_token = auth.verify_id_token(id_token)
        logger.info(f"Firebase token verified for UID: {decoded_token['uid']}")
        return decoded_token
    except auth.ExpiredIdTokenError as e:
        logger.error(f"Expired Firebase ID token: {e}")
        raise ValueError(f"Firebase token expired: {str(e)}")
    except auth.InvalidIdTokenError as e:
        logger.error(f"Invalid Firebase ID token: {e}")
        raise ValueError(f"Invalid Firebase token: {str(e)}")
    except Exception as e:
        logger.error(f"Error verifying Firebase token: {e}")
        raise ValueError(f"Token verification failed: {str(e)}")


def get_user_info_from_token(decoded_token: Dict) -> Dict:
    """Extract the identity fields we keep from a decoded Firebase token"""
    user_info = {
        'firebase_uid': decoded_token['uid'],
        'email': decoded_token.get('email'),
        'display_name': decoded_token.get('name'),
        'photo_url': decoded_token.get('picture'),
    }
    logger.info(f"Extracted user info for: {user_info.get('email') or 'anonymous'}")
    return user_info


def suggest_username(user_info: Dict) -> str:
    """Username derived from the token when the client did not pick one"""
    for candidate in (user_info.get('display_name'), (user_info.get('email') or '').split('@')[0]):
        try:
            return normalize_username(candidate or '')
        except ValidationError:
            continue
    return f"user_{uuid4().hex[:8]}"


class AuthService:
    """Service for authentication operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_user_by_firebase_uid(self, firebase_uid: str) -> Optional[User]:
        """Get user by Firebase UID"""
        return self.db.query(User).filter(User.firebase_uid == firebase_uid).first()

    def get_user_by_id(self, user_id) -> Optional[User]:
        """Get user by ID"""
        try:
            user_uuid = UUID(user_id) if isinstance(user_id, str) else user_id
            return self.db.query(User).filter(User.id == user_uuid).first()
        except (ValueError, TypeError):
            return None

    def create_user_from_firebase(self, user_info: Dict) -> User:
        """Create the local identity for a Firebase user"""
        user = User(
            email=user_info.get('email'),
            firebase_uid=user_info['firebase_uid'],
        )

        with write_transaction(self.db, "User already exists"):
            self.db.add(user)
        self.db.refresh(user)

        logger.info(f"Created new user with ID: {user.id}")
        return user

    def ensure_profile(self, user: User, user_info: Dict, username: Optional[str] = None) -> Profile:
        """
        Create the identity's profile on first sign-in.

        An explicitly requested username must be free; a derived one gets a
        random suffix when taken.
        """
        existing = self.db.query(Profile).filter(Profile.user_id == user.id).first()
        if existing:
            return existing

        if username:
            return profile_service.create_profile(
                self.db, user.id, username, avatar_url=user_info.get('photo_url')
            )

        base = suggest_username(user_info)
        try:
            return profile_service.create_profile(
                self.db, user.id, base, avatar_url=user_info.get('photo_url')
            )
        except ConstraintViolationError:
            return profile_service.create_profile(
                self.db, user.id, f"{base}_{uuid4().hex[:6]}", avatar_url=user_info.get('photo_url')
            )

    def sign_in(self, user_info: Dict, username: Optional[str] = None) -> Tuple[User, bool]:
        """Find or create the identity (and its profile) for a verified Firebase user"""
        user = self.get_user_by_firebase_uid(user_info['firebase_uid'])
        is_new_user = user is None
        if is_new_user:
            user = self.create_user_from_firebase(user_info)
        self.ensure_profile(user, user_info, username)
        return user, is_new_user

    def create_access_token_for_user(self, user: User) -> str:
        """Create JWT access token for user"""
        return create_access_token(data={"sub": str(user.id)})

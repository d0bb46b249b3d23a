"""
Authentication endpoints - Firebase token verification and JWT management
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.schemas.auth import FirebaseAuthRequest, IdentityResponse, Token
from app.services.auth_service import (
    AuthService,
    verify_firebase_token,
    get_user_info_from_token
)
from app.core.dependencies import get_current_user
from app.models.user import User
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/firebase", response_model=Token, status_code=status.HTTP_200_OK)
async def authenticate_with_firebase(
    request: FirebaseAuthRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user with Firebase ID token

    This endpoint:
    1. Verifies the Firebase ID token
    2. Creates the identity and its profile on first sign-in
    3. Returns backend JWT token

    - **firebase_token**: Firebase ID token from client
    - **username**: optional username for the profile created on first sign-in
    """
    try:
        decoded_token = verify_firebase_token(request.firebase_token)
    except ValueError as e:
        logger.error(f"Firebase token validation error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid Firebase token: {str(e)}"
        )
    except RuntimeError as e:
        logger.error(f"Firebase SDK error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication provider unavailable"
        )

    user_info = get_user_info_from_token(decoded_token)
    auth_service = AuthService(db)
    user, is_new_user = auth_service.sign_in(user_info, request.username)

    access_token = auth_service.create_access_token_for_user(user)
    logger.info(f"Authentication successful for user: {user.id} (new={is_new_user})")

    return Token(
        access_token=access_token,
        user_id=str(user.id),
        is_new_user=is_new_user
    )


@router.get("/me", response_model=IdentityResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get the authenticated identity"""
    return current_user


@router.post("/refresh", response_model=Token)
async def refresh_token(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Issue a new JWT for the authenticated identity"""
    auth_service = AuthService(db)
    access_token = auth_service.create_access_token_for_user(current_user)

    return Token(access_token=access_token, user_id=str(current_user.id))

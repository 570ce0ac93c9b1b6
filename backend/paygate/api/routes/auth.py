"""
Authentication routes for register, login, refresh, logout and current user.
"""
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from paygate.db.session import get_db
from paygate.schemas.auth import AccessToken, LogoutRequest, RefreshRequest, Token
from paygate.schemas.user import UserCreate, UserLogin, UserResponse
from paygate.models.user import User
from paygate.core.utils import format_response
from paygate.api.dependencies import get_current_user
from paygate.services import auth_service, token_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a new user with the default role."""
    user, tokens = auth_service.register(user_data, db)
    return format_response(
        {"user": UserResponse.model_validate(user), "tokens": Token(**tokens)},
        "User registered successfully"
    )


@router.post("/login")
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Login and get an access/refresh token pair."""
    user, tokens = auth_service.login(credentials.email, credentials.password, db)
    return format_response(
        {"user": UserResponse.model_validate(user), "tokens": Token(**tokens)},
        "Login successful"
    )


@router.post("/refresh")
def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    """Exchange a refresh token for a new access token."""
    access_token = token_service.refresh_access_token(body.refresh_token, db)
    return format_response(
        AccessToken(access_token=access_token),
        "Token refreshed successfully"
    )


@router.post("/logout")
def logout(body: Optional[LogoutRequest] = None, db: Session = Depends(get_db)):
    """Forget the supplied refresh token; unknown tokens are ignored."""
    token_service.revoke(body.refresh_token if body else None, db)
    return format_response(None, "Logout successful")


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return format_response(
        {"user": UserResponse.model_validate(current_user)},
        "User profile retrieved successfully"
    )

"""
Session/token issuer: access tokens, persisted refresh tokens, refresh and logout.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from paygate.core import security
from paygate.core.exceptions import AppError, ExpiredTokenError, UnauthorizedError
from paygate.models.refresh_token import RefreshToken
from paygate.models.user import User

logger = logging.getLogger(__name__)


def issue_access(user: User) -> str:
    """Issue a short-lived access token carrying id, email and role."""
    return security.create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role_id}
    )


def purge_expired_refresh_tokens(db: Session, now: Optional[datetime] = None) -> int:
    """Delete refresh tokens whose expiry has passed."""
    removed = db.query(RefreshToken).filter(
        RefreshToken.expires_at < (now or datetime.utcnow())
    ).delete(synchronize_session=False)
    if removed:
        logger.debug(f"Purged {removed} expired refresh token(s)")
    return removed


def issue_refresh(user: User, db: Session) -> str:
    """Issue a refresh token and persist it with its expiry."""
    ttl = security.refresh_token_ttl()
    token = security.create_refresh_token(data={"sub": str(user.id)}, expires_delta=ttl)

    # Expired rows are swept whenever a new one is stored
    purge_expired_refresh_tokens(db)
    db.add(RefreshToken(
        token=token,
        user_id=user.id,
        expires_at=datetime.utcnow() + ttl
    ))
    db.commit()
    return token


def issue_token_pair(user: User, db: Session) -> Dict[str, str]:
    """Issue both tokens for a freshly authenticated user."""
    return {
        "access_token": issue_access(user),
        "refresh_token": issue_refresh(user, db),
        "token_type": "bearer",
    }


def verify(token: str, kind: str) -> Dict[str, Any]:
    """Verify a token of the given kind and return its claims."""
    return security.decode_token(token, kind)


def refresh_access_token(refresh_token: str, db: Session) -> str:
    """
    Mint a new access token from a refresh token.

    The refresh token is not rotated and stays valid until it expires or the
    user logs out with it.
    """
    try:
        claims = verify(refresh_token, security.REFRESH)
    except ExpiredTokenError:
        # The signed expiry runs out first, so the stored row goes here
        revoke(refresh_token, db)
        raise UnauthorizedError("Invalid or expired refresh token")
    except AppError:
        raise UnauthorizedError("Invalid or expired refresh token")

    stored = db.query(RefreshToken).filter(RefreshToken.token == refresh_token).first()
    if not stored:
        raise UnauthorizedError("Invalid refresh token")

    if stored.is_expired():
        db.delete(stored)
        db.commit()
        raise UnauthorizedError("Refresh token expired")

    user = db.query(User).filter(User.id == int(claims["sub"])).first()
    if not user or not user.is_active:
        raise UnauthorizedError("User not found or inactive")

    return issue_access(user)


def revoke(refresh_token: Optional[str], db: Session) -> bool:
    """Delete the stored refresh token if there is one. Returns whether a row was removed."""
    if not refresh_token:
        return False
    removed = db.query(RefreshToken).filter(
        RefreshToken.token == refresh_token
    ).delete(synchronize_session=False)
    db.commit()
    return bool(removed)

"""
Security utilities for JWT authentication and password hashing.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
import hashlib
import re
import uuid
import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from paygate.core.config import settings
from paygate.core.exceptions import ExpiredTokenError, InvalidTokenError

ACCESS = "access"
REFRESH = "refresh"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([a-zA-Z]?)\s*$")
_DURATION_UNITS = {
    "d": timedelta(days=1),
    "h": timedelta(hours=1),
    "m": timedelta(minutes=1),
    "s": timedelta(seconds=1),
}
_DEFAULT_DURATION = timedelta(days=7)


def _pre_hash_password(password: str) -> bytes:
    """
    Pre-hash password with SHA256 to support passwords longer than 72 bytes.
    Returns bytes (32 bytes) which is well under bcrypt's 72-byte limit.
    """
    return hashlib.sha256(password.encode('utf-8')).digest()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pre_hashed = _pre_hash_password(plain_password)
    try:
        return bcrypt.checkpw(pre_hashed, hashed_password.encode('utf-8'))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password.
    Pre-hashes with SHA256 first to support passwords longer than 72 bytes.
    The cost factor defaults to BCRYPT_ROUNDS.
    """
    pre_hashed = _pre_hash_password(password)
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(pre_hashed, salt)
    return hashed.decode('utf-8')


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration such as "15m", "12h" or "7d".

    A bare number is read as seconds. Unknown units fall back to seven days.
    """
    match = _DURATION_RE.match(value or "")
    if not match:
        return _DEFAULT_DURATION
    amount, unit = int(match.group(1)), match.group(2).lower() or "s"
    if unit not in _DURATION_UNITS:
        return _DEFAULT_DURATION
    return amount * _DURATION_UNITS[unit]


def access_token_ttl() -> timedelta:
    return parse_duration(settings.JWT_ACCESS_EXPIRES_IN)


def refresh_token_ttl() -> timedelta:
    return parse_duration(settings.JWT_REFRESH_EXPIRES_IN)


def _secret_for(kind: str) -> str:
    if kind == ACCESS:
        return settings.JWT_ACCESS_SECRET
    if kind == REFRESH:
        return settings.JWT_REFRESH_SECRET
    raise ValueError(f"Unknown token kind: {kind}")


def create_token(data: dict, kind: str, expires_delta: timedelta) -> str:
    """Create a signed JWT of the given kind."""
    to_encode = data.copy()
    expire = datetime.utcnow() + expires_delta
    to_encode.update({"exp": expire, "type": kind})
    return jwt.encode(to_encode, _secret_for(kind), algorithm=settings.ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    return create_token(data, ACCESS, expires_delta or access_token_ttl())


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT refresh token with a unique id so tokens never collide."""
    to_encode = data.copy()
    to_encode.setdefault("jti", uuid.uuid4().hex)
    return create_token(to_encode, REFRESH, expires_delta or refresh_token_ttl())


def decode_token(token: str, kind: str) -> Dict[str, Any]:
    """
    Decode and verify a JWT of the given kind.

    Raises ExpiredTokenError for an expired signature and InvalidTokenError
    for anything else wrong with the token.
    """
    try:
        payload = jwt.decode(token, _secret_for(kind), algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise ExpiredTokenError()
    except JWTError:
        raise InvalidTokenError()
    if payload.get("type") != kind or "sub" not in payload:
        raise InvalidTokenError()
    return payload

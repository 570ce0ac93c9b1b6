"""
Pydantic schemas for authentication requests and token payloads.
"""
from pydantic import BaseModel, Field
from typing import Optional


class Token(BaseModel):
    """Access/refresh token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AccessToken(BaseModel):
    """Freshly minted access token."""
    access_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    """Schema for token refresh."""
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    """Schema for logout; the token is optional."""
    refresh_token: Optional[str] = None

"""
Pydantic schemas for User entity.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from paygate.schemas.role import RoleSummary


class UserBase(BaseModel):
    """Base user schema."""
    email: EmailStr
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)


class UserCreate(UserBase):
    """Schema for user registration."""
    password: str = Field(..., min_length=6, max_length=128)


class UserUpdate(BaseModel):
    """Schema for user update."""
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    is_active: Optional[bool] = None


class UserRoleChange(BaseModel):
    """Schema for reassigning a user's role."""
    role_id: int = Field(..., gt=0)


class UserSummary(BaseModel):
    """Short user reference embedded in other responses."""
    id: int
    email: str
    first_name: str
    last_name: str

    class Config:
        from_attributes = True


class UserResponse(UserSummary):
    """Schema for user response; never carries the password hash."""
    full_name: str
    is_active: bool
    last_login: Optional[datetime] = None
    role: Optional[RoleSummary] = None
    created_at: datetime
    updated_at: datetime


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str = Field(..., min_length=1)

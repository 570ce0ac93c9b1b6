"""
Pydantic schemas for Role entity.
"""
import re
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

PERMISSION_PATTERN = re.compile(r"^[a-z][a-z0-9_]*:[a-z][a-z0-9_]*$")


def _clean_permissions(values: Optional[List[str]]) -> Optional[List[str]]:
    """Validate permission shape and drop duplicates, keeping first occurrence."""
    if values is None:
        return None
    cleaned = []
    for value in values:
        value = value.strip()
        if not PERMISSION_PATTERN.match(value):
            raise ValueError(f"Invalid permission '{value}', expected resource:action")
        if value not in cleaned:
            cleaned.append(value)
    return cleaned


class RoleCreate(BaseModel):
    """Schema for role creation."""
    name: str = Field(..., min_length=1, max_length=50)
    permissions: List[str] = []
    description: Optional[str] = ""

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v):
        """Role names are stored lower-case."""
        v = v.strip().lower()
        if not re.match(r"^[a-z][a-z0-9_-]*$", v):
            raise ValueError("Role name must start with a letter and contain only letters, digits, '-' or '_'")
        return v

    @field_validator("permissions")
    @classmethod
    def check_permissions(cls, v):
        return _clean_permissions(v)


class RoleUpdate(BaseModel):
    """Schema for role update; permissions replace the current set."""
    permissions: Optional[List[str]] = None
    description: Optional[str] = None

    @field_validator("permissions")
    @classmethod
    def check_permissions(cls, v):
        return _clean_permissions(v)


class RoleSummary(BaseModel):
    """Role as embedded in user responses."""
    id: int
    name: str
    permissions: List[str]
    description: str = ""

    class Config:
        from_attributes = True


class RoleResponse(RoleSummary):
    """Schema for role response."""
    created_at: datetime
    updated_at: datetime

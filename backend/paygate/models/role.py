"""
Role model holding a named bundle of permissions.
"""
from sqlalchemy import Column, String, Text, JSON
from sqlalchemy.orm import relationship
from paygate.db.base import BaseModel


class Role(BaseModel):
    """Role with a dynamic list of permission strings."""
    __tablename__ = "roles"

    name = Column(String(50), unique=True, nullable=False, index=True)
    permissions = Column(JSON, nullable=False, default=list)
    description = Column(Text, nullable=False, default="")

    # Relationships
    users = relationship("User", back_populates="role")

"""
Persisted refresh tokens.
"""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from paygate.db.base import BaseModel


class RefreshToken(BaseModel):
    """A refresh token issued to a user; several may be live at once."""
    __tablename__ = "refresh_tokens"

    token = Column(String(512), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="refresh_tokens")

    def is_expired(self, now: datetime = None) -> bool:
        """Check whether the stored expiry has passed."""
        return self.expires_at < (now or datetime.utcnow())

"""Models package - Import all models for SQLAlchemy registration."""
from paygate.models.role import Role
from paygate.models.user import User
from paygate.models.payment import Payment, PaymentStatus, PaymentMethod
from paygate.models.refresh_token import RefreshToken

__all__ = [
    "Role",
    "User",
    "Payment",
    "PaymentStatus",
    "PaymentMethod",
    "RefreshToken",
]

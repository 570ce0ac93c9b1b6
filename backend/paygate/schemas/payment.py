"""
Pydantic schemas for Payment entity.
"""
from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Any, Dict, Optional
from datetime import datetime
from decimal import Decimal
from paygate.models.payment import PaymentMethod, PaymentStatus
from paygate.schemas.user import UserSummary


class PaymentCreate(BaseModel):
    """Schema for payment creation."""
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    currency: str = Field("USD", min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=500)
    payment_method: PaymentMethod = PaymentMethod.CARD
    metadata: Dict[str, Any] = {}

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v):
        """Currency must be a 3-letter code, stored upper-case."""
        if not v.isalpha():
            raise ValueError("Currency must be a 3-letter code")
        return v.upper()

    @field_validator("description")
    @classmethod
    def strip_description(cls, v):
        return v.strip() if v is not None else v


class PaymentReject(BaseModel):
    """Schema for rejecting a payment."""
    reason: Optional[str] = Field(None, max_length=500)


class PaymentResponse(BaseModel):
    """Schema for payment response."""
    id: int
    user_id: int
    user: Optional[UserSummary] = None
    amount: float
    currency: str
    description: Optional[str] = None
    payment_method: PaymentMethod
    status: PaymentStatus
    approved_by_id: Optional[int] = None
    approved_by: Optional[UserSummary] = None
    approved_at: Optional[datetime] = None
    processed_by_id: Optional[int] = None
    processed_by: Optional[UserSummary] = None
    processed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    transaction_id: str
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("extra_metadata", "metadata"),
    )
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

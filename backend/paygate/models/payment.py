"""
Payment model and its status state machine.
"""
import enum
import secrets
import string
import time
from typing import Dict, FrozenSet
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Integer, Text, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from paygate.db.base import BaseModel


class PaymentStatus(str, enum.Enum):
    """Payment status enumeration."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethod(str, enum.Enum):
    """Accepted payment method tags."""
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"
    CRYPTO = "crypto"


# current status -> statuses it may move to
PAYMENT_STATUS_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.APPROVED, PaymentStatus.REJECTED}),
    PaymentStatus.APPROVED: frozenset({PaymentStatus.PROCESSING}),
    PaymentStatus.PROCESSING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.COMPLETED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REJECTED: frozenset(),
}

FINAL_STATUSES = frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.REJECTED})

# Statuses in which a payment may no longer be deleted
UNDELETABLE_STATUSES = frozenset({PaymentStatus.PROCESSING, PaymentStatus.COMPLETED})

_TXN_ALPHABET = string.ascii_uppercase + string.digits


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    """Check whether the state machine allows current -> target."""
    return target in PAYMENT_STATUS_TRANSITIONS.get(PaymentStatus(current), frozenset())


def is_final_state(current: PaymentStatus) -> bool:
    return PaymentStatus(current) in FINAL_STATUSES


def generate_transaction_id() -> str:
    """Build a transaction id from epoch milliseconds plus a random suffix."""
    suffix = "".join(secrets.choice(_TXN_ALPHABET) for _ in range(9))
    return f"TXN-{int(time.time() * 1000)}-{suffix}"


class Payment(BaseModel):
    """Payment record moving through the approval workflow."""
    __tablename__ = "payments"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    description = Column(Text, nullable=True)
    payment_method = Column(SQLEnum(PaymentMethod), nullable=False, default=PaymentMethod.CARD)
    status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING, index=True)

    # Workflow tracking
    approved_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    processed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    processed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    failure_reason = Column(Text, nullable=True)

    transaction_id = Column(String(64), unique=True, nullable=False, index=True, default=generate_transaction_id)
    # "metadata" is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, nullable=False, default=dict)

    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="payments")
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    processed_by = relationship("User", foreign_keys=[processed_by_id])

    def can_transition_to(self, target: PaymentStatus) -> bool:
        return can_transition(self.status, target)

"""
Payment workflow service.

State machine::

    pending --approve--> approved --process--> processing --> completed
       |                                              \\----> failed
       \\--reject--> rejected

Every transition is gated by a permission and only allowed from its exact
source status. A transition attempted from any other status raises
InvalidStateError and leaves the record untouched.

``process`` commits twice: once to mark the payment ``processing`` and once
with the drawn outcome. Nothing wraps the two commits, so if the process dies
in between the payment stays in ``processing``. Since ``processing`` is not a
valid source for ``process``, such a payment needs manual intervention.
"""
import logging
import random
from datetime import datetime
from typing import Callable, List, Optional, Tuple
from sqlalchemy.orm import Session, joinedload
from paygate.core import permissions as perms
from paygate.core.config import settings
from paygate.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from paygate.core.rbac import AuthenticatedCaller, is_owner_or_permitted, require_any
from paygate.models.payment import (
    Payment, PaymentStatus, UNDELETABLE_STATUSES, generate_transaction_id
)
from paygate.schemas.payment import PaymentCreate

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "Rejected by approver"
GATEWAY_DECLINE_REASON = "Payment gateway error: Insufficient funds or card declined"


def _with_relations(db: Session):
    return db.query(Payment).options(
        joinedload(Payment.user),
        joinedload(Payment.approved_by),
        joinedload(Payment.processed_by),
    )


def _get_payment_or_404(payment_id: int, db: Session) -> Payment:
    payment = _with_relations(db).filter(Payment.id == payment_id).first()
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def _ensure_transition(payment: Payment, target: PaymentStatus, action: str) -> None:
    """Reject the transition unless the state machine allows it."""
    if not payment.can_transition_to(target):
        current = PaymentStatus(payment.status).value
        raise InvalidStateError(
            f"Payment cannot be {action}. Current status: {current}",
            errors=[{"field": "status", "message": f"Current status: {current}"}]
        )


def create_payment(payment_data: PaymentCreate, caller: AuthenticatedCaller, db: Session) -> Payment:
    """Create a pending payment owned by the caller."""
    require_any(caller, perms.PAYMENTS_CREATE)

    payment = Payment(
        user_id=caller.user_id,
        amount=payment_data.amount,
        currency=payment_data.currency.upper(),
        description=payment_data.description,
        payment_method=payment_data.payment_method,
        extra_metadata=dict(payment_data.metadata or {}),
        status=PaymentStatus.PENDING,
        transaction_id=generate_transaction_id()
    )
    db.add(payment)
    db.commit()
    logger.info(f"Payment {payment.id} ({payment.transaction_id}) created by user {caller.user_id}")
    return _get_payment_or_404(payment.id, db)


def list_payments(
    caller: AuthenticatedCaller,
    db: Session,
    status: Optional[PaymentStatus] = None,
    user_id: Optional[int] = None,
    page: int = 1,
    limit: int = 10
) -> Tuple[List[Payment], int]:
    """
    List payments, newest first.

    Callers without the global read permission only ever see their own
    payments, whatever ``user_id`` they ask for.
    """
    require_any(caller, perms.PAYMENTS_READ, perms.PAYMENTS_READ_ALL)

    query = db.query(Payment)
    if not caller.can(perms.PAYMENTS_READ_ALL):
        query = query.filter(Payment.user_id == caller.user_id)
    elif user_id is not None:
        query = query.filter(Payment.user_id == user_id)
    if status is not None:
        query = query.filter(Payment.status == PaymentStatus(status))

    total = query.count()
    payments = query.options(
        joinedload(Payment.user),
        joinedload(Payment.approved_by),
        joinedload(Payment.processed_by),
    ).order_by(
        Payment.created_at.desc(), Payment.id.desc()
    ).offset((page - 1) * limit).limit(limit).all()
    return payments, total


def get_payment(payment_id: int, caller: AuthenticatedCaller, db: Session) -> Payment:
    """Get a payment the caller owns or may read globally."""
    require_any(caller, perms.PAYMENTS_READ, perms.PAYMENTS_READ_ALL)
    payment = _get_payment_or_404(payment_id, db)

    if not is_owner_or_permitted(payment.user_id, caller.user_id, caller.permissions, perms.PAYMENTS_READ_ALL):
        raise ForbiddenError("You do not have permission to view this payment")
    return payment


def approve_payment(payment_id: int, caller: AuthenticatedCaller, db: Session) -> Payment:
    """pending -> approved."""
    require_any(caller, perms.PAYMENTS_APPROVE)
    payment = _get_payment_or_404(payment_id, db)
    _ensure_transition(payment, PaymentStatus.APPROVED, "approved")

    payment.status = PaymentStatus.APPROVED
    payment.approved_by_id = caller.user_id
    payment.approved_at = datetime.utcnow()
    db.commit()
    logger.info(f"Payment {payment.id} approved by user {caller.user_id}")
    return _get_payment_or_404(payment.id, db)


def reject_payment(
    payment_id: int,
    caller: AuthenticatedCaller,
    db: Session,
    reason: Optional[str] = None
) -> Payment:
    """pending -> rejected, recording who rejected it and why."""
    require_any(caller, perms.PAYMENTS_APPROVE)
    payment = _get_payment_or_404(payment_id, db)
    _ensure_transition(payment, PaymentStatus.REJECTED, "rejected")

    payment.status = PaymentStatus.REJECTED
    payment.approved_by_id = caller.user_id
    payment.approved_at = datetime.utcnow()
    payment.failure_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
    db.commit()
    logger.info(f"Payment {payment.id} rejected by user {caller.user_id}")
    return _get_payment_or_404(payment.id, db)


def process_payment(
    payment_id: int,
    caller: AuthenticatedCaller,
    db: Session,
    draw: Optional[Callable[[], float]] = None,
    success_rate: Optional[float] = None
) -> Payment:
    """
    approved -> processing -> completed | failed.

    The outcome is simulated: the payment completes when ``draw()`` falls
    below ``success_rate`` (PAYMENT_SUCCESS_RATE by default).
    """
    require_any(caller, perms.PAYMENTS_PROCESS)
    payment = _get_payment_or_404(payment_id, db)
    _ensure_transition(payment, PaymentStatus.PROCESSING, "processed")

    # Phase 1: persist processing before the outcome is known
    payment.status = PaymentStatus.PROCESSING
    payment.processed_by_id = caller.user_id
    payment.processed_at = datetime.utcnow()
    db.commit()

    # Phase 2: resolve the simulated gateway outcome
    rate = settings.PAYMENT_SUCCESS_RATE if success_rate is None else success_rate
    if (draw or random.random)() < rate:
        payment.status = PaymentStatus.COMPLETED
        payment.completed_at = datetime.utcnow()
    else:
        payment.status = PaymentStatus.FAILED
        payment.failure_reason = GATEWAY_DECLINE_REASON
    db.commit()

    logger.info(f"Payment {payment.id} processed by user {caller.user_id}: {payment.status.value}")
    return _get_payment_or_404(payment.id, db)


def delete_payment(payment_id: int, caller: AuthenticatedCaller, db: Session) -> None:
    """Delete a payment unless it is processing or completed."""
    require_any(caller, perms.PAYMENTS_DELETE)
    payment = _get_payment_or_404(payment_id, db)

    if PaymentStatus(payment.status) in UNDELETABLE_STATUSES:
        raise InvalidStateError("Cannot delete a payment that is processing or completed")

    db.delete(payment)
    db.commit()
    logger.info(f"Payment {payment_id} deleted by user {caller.user_id}")

"""
Payment workflow routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from paygate.db.session import get_db
from paygate.models.payment import PaymentStatus
from paygate.schemas.payment import PaymentCreate, PaymentReject, PaymentResponse
from paygate.core import permissions as perms
from paygate.core.rbac import AuthenticatedCaller
from paygate.core.utils import format_response, paginate
from paygate.api.dependencies import require_permissions
from paygate.services import payment_service

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_payment(
    payment_data: PaymentCreate,
    caller: AuthenticatedCaller = Depends(require_permissions(perms.PAYMENTS_CREATE)),
    db: Session = Depends(get_db)
):
    """Create a new pending payment."""
    payment = payment_service.create_payment(payment_data, caller, db)
    return format_response({"payment": PaymentResponse.model_validate(payment)}, "Payment created successfully")


@router.get("")
def list_payments(
    status: Optional[PaymentStatus] = None,
    user_id: Optional[int] = Query(None, gt=0),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    caller: AuthenticatedCaller = Depends(require_permissions(perms.PAYMENTS_READ, perms.PAYMENTS_READ_ALL)),
    db: Session = Depends(get_db)
):
    """List payments; scoped to your own unless you hold payments:read_all."""
    payments, total = payment_service.list_payments(
        caller, db, status=status, user_id=user_id, page=page, limit=limit
    )
    return format_response(
        {
            "payments": [PaymentResponse.model_validate(p) for p in payments],
            "pagination": paginate(total, page, limit),
        },
        "Payments retrieved successfully"
    )


@router.get("/{payment_id}")
def get_payment(
    payment_id: int,
    caller: AuthenticatedCaller = Depends(require_permissions(perms.PAYMENTS_READ, perms.PAYMENTS_READ_ALL)),
    db: Session = Depends(get_db)
):
    """Get payment by ID (owner or payments:read_all)."""
    payment = payment_service.get_payment(payment_id, caller, db)
    return format_response({"payment": PaymentResponse.model_validate(payment)}, "Payment retrieved successfully")


@router.put("/{payment_id}/approve")
def approve_payment(
    payment_id: int,
    caller: AuthenticatedCaller = Depends(require_permissions(perms.PAYMENTS_APPROVE)),
    db: Session = Depends(get_db)
):
    """Approve a pending payment."""
    payment = payment_service.approve_payment(payment_id, caller, db)
    return format_response({"payment": PaymentResponse.model_validate(payment)}, "Payment approved successfully")


@router.put("/{payment_id}/reject")
def reject_payment(
    payment_id: int,
    reject_data: Optional[PaymentReject] = None,
    caller: AuthenticatedCaller = Depends(require_permissions(perms.PAYMENTS_APPROVE)),
    db: Session = Depends(get_db)
):
    """Reject a pending payment with an optional reason."""
    reason = reject_data.reason if reject_data else None
    payment = payment_service.reject_payment(payment_id, caller, db, reason=reason)
    return format_response({"payment": PaymentResponse.model_validate(payment)}, "Payment rejected successfully")


@router.put("/{payment_id}/process")
def process_payment(
    payment_id: int,
    caller: AuthenticatedCaller = Depends(require_permissions(perms.PAYMENTS_PROCESS)),
    db: Session = Depends(get_db)
):
    """Process an approved payment through the simulated gateway."""
    payment = payment_service.process_payment(payment_id, caller, db)
    outcome = "completed" if payment.status == PaymentStatus.COMPLETED else "failed"
    return format_response({"payment": PaymentResponse.model_validate(payment)}, f"Payment {outcome}")


@router.delete("/{payment_id}")
def delete_payment(
    payment_id: int,
    caller: AuthenticatedCaller = Depends(require_permissions(perms.PAYMENTS_DELETE)),
    db: Session = Depends(get_db)
):
    """Delete a payment that is not processing or completed."""
    payment_service.delete_payment(payment_id, caller, db)
    return format_response(None, "Payment deleted successfully")

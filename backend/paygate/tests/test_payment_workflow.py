"""
Tests for the payment state machine in the payment service.
"""
from decimal import Decimal
import pytest
from paygate.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from paygate.models.payment import (
    Payment, PaymentStatus, PAYMENT_STATUS_TRANSITIONS, can_transition, generate_transaction_id, is_final_state
)
from paygate.schemas.payment import PaymentCreate
from paygate.services import payment_service


@pytest.fixture
def callers(admin, manager, user, other_user, caller_for):
    return {
        "admin": caller_for(admin["id"]),
        "manager": caller_for(manager["id"]),
        "user": caller_for(user["id"]),
        "other": caller_for(other_user["id"]),
    }


def new_payment(callers, db, amount="99.99"):
    return payment_service.create_payment(
        PaymentCreate(amount=Decimal(amount), description="Monthly subscription payment"),
        callers["user"], db
    )


def force_status(db, payment_id, status):
    payment = db.query(Payment).filter(Payment.id == payment_id).one()
    payment.status = status
    db.commit()


def snapshot(db, payment_id):
    db.expire_all()
    p = db.query(Payment).filter(Payment.id == payment_id).one()
    return (p.status, p.approved_by_id, p.approved_at, p.processed_by_id, p.processed_at,
            p.completed_at, p.failure_reason)


def test_transition_table():
    """Only the documented edges exist; terminal states have none."""
    assert can_transition(PaymentStatus.PENDING, PaymentStatus.APPROVED)
    assert can_transition(PaymentStatus.PENDING, PaymentStatus.REJECTED)
    assert can_transition(PaymentStatus.APPROVED, PaymentStatus.PROCESSING)
    assert can_transition(PaymentStatus.PROCESSING, PaymentStatus.COMPLETED)
    assert can_transition(PaymentStatus.PROCESSING, PaymentStatus.FAILED)
    assert not can_transition(PaymentStatus.PENDING, PaymentStatus.PROCESSING)
    assert not can_transition(PaymentStatus.APPROVED, PaymentStatus.COMPLETED)
    for status in (PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.REJECTED):
        assert PAYMENT_STATUS_TRANSITIONS[status] == frozenset()
        assert is_final_state(status)
    assert not is_final_state(PaymentStatus.PROCESSING)


def test_transaction_ids_are_unique():
    ids = {generate_transaction_id() for _ in range(500)}
    assert len(ids) == 500
    assert all(i.startswith("TXN-") for i in ids)


def test_create_starts_pending(callers, db):
    payment = new_payment(callers, db)
    assert payment.status == PaymentStatus.PENDING
    assert payment.user_id == callers["user"].user_id
    assert payment.currency == "USD"
    assert payment.transaction_id.startswith("TXN-")
    assert payment.extra_metadata == {}


def test_create_requires_permission(callers, db):
    """Managers have no payments:create."""
    with pytest.raises(ForbiddenError):
        payment_service.create_payment(PaymentCreate(amount=Decimal("5")), callers["manager"], db)


def test_approve_records_approver(callers, db):
    payment = new_payment(callers, db)
    approved = payment_service.approve_payment(payment.id, callers["manager"], db)
    assert approved.status == PaymentStatus.APPROVED
    assert approved.approved_by_id == callers["manager"].user_id
    assert approved.approved_at is not None


def test_reject_default_and_custom_reason(callers, db):
    first = new_payment(callers, db)
    rejected = payment_service.reject_payment(first.id, callers["manager"], db)
    assert rejected.status == PaymentStatus.REJECTED
    assert rejected.failure_reason == "Rejected by approver"
    assert rejected.approved_by_id == callers["manager"].user_id

    second = new_payment(callers, db)
    rejected = payment_service.reject_payment(second.id, callers["manager"], db, reason="Over limit")
    assert rejected.failure_reason == "Over limit"


def test_plain_user_cannot_approve_or_process(callers, db):
    payment = new_payment(callers, db)
    with pytest.raises(ForbiddenError):
        payment_service.approve_payment(payment.id, callers["user"], db)
    with pytest.raises(ForbiddenError):
        payment_service.process_payment(payment.id, callers["user"], db)


@pytest.mark.parametrize("status", [s for s in PaymentStatus if s != PaymentStatus.PENDING])
def test_approve_and_reject_need_pending(callers, db, status):
    """Failed attempts raise and leave the record exactly as it was."""
    payment = new_payment(callers, db)
    force_status(db, payment.id, status)
    before = snapshot(db, payment.id)

    with pytest.raises(InvalidStateError) as exc_info:
        payment_service.approve_payment(payment.id, callers["manager"], db)
    assert f"Current status: {status.value}" in exc_info.value.message
    with pytest.raises(InvalidStateError):
        payment_service.reject_payment(payment.id, callers["manager"], db, reason="late")

    assert snapshot(db, payment.id) == before


@pytest.mark.parametrize("status", [s for s in PaymentStatus if s != PaymentStatus.APPROVED])
def test_process_needs_approved(callers, db, status):
    payment = new_payment(callers, db)
    force_status(db, payment.id, status)
    before = snapshot(db, payment.id)

    with pytest.raises(InvalidStateError):
        payment_service.process_payment(payment.id, callers["admin"], db, draw=lambda: 0.0)

    assert snapshot(db, payment.id) == before


def test_process_success(callers, db):
    payment = new_payment(callers, db)
    payment_service.approve_payment(payment.id, callers["manager"], db)

    processed = payment_service.process_payment(payment.id, callers["admin"], db, draw=lambda: 0.1)
    assert processed.status == PaymentStatus.COMPLETED
    assert processed.processed_by_id == callers["admin"].user_id
    assert processed.processed_at is not None
    assert processed.completed_at is not None
    assert processed.failure_reason is None


def test_process_failure(callers, db):
    payment = new_payment(callers, db)
    payment_service.approve_payment(payment.id, callers["manager"], db)

    processed = payment_service.process_payment(payment.id, callers["manager"], db, draw=lambda: 0.95)
    assert processed.status == PaymentStatus.FAILED
    assert processed.processed_by_id == callers["manager"].user_id
    assert processed.processed_at is not None
    assert processed.completed_at is None
    assert processed.failure_reason == payment_service.GATEWAY_DECLINE_REASON


def test_process_success_rate_threshold(callers, db):
    """The draw is compared against the success rate (default 80%)."""
    payment = new_payment(callers, db)
    payment_service.approve_payment(payment.id, callers["manager"], db)
    processed = payment_service.process_payment(payment.id, callers["admin"], db, draw=lambda: 0.8)
    assert processed.status == PaymentStatus.FAILED

    payment = new_payment(callers, db)
    payment_service.approve_payment(payment.id, callers["manager"], db)
    processed = payment_service.process_payment(payment.id, callers["admin"], db, draw=lambda: 0.79)
    assert processed.status == PaymentStatus.COMPLETED


def test_process_always_ends_terminal(callers, db):
    """Whatever the draw, processing ends completed or failed."""
    for value in (0.0, 0.25, 0.5, 0.75, 0.99):
        payment = new_payment(callers, db)
        payment_service.approve_payment(payment.id, callers["manager"], db)
        processed = payment_service.process_payment(payment.id, callers["admin"], db, draw=lambda: value)
        assert processed.status in (PaymentStatus.COMPLETED, PaymentStatus.FAILED)
        assert processed.processed_by_id is not None


def test_stuck_processing_cannot_be_reprocessed(callers, db):
    payment = new_payment(callers, db)
    force_status(db, payment.id, PaymentStatus.PROCESSING)
    with pytest.raises(InvalidStateError):
        payment_service.process_payment(payment.id, callers["admin"], db)


@pytest.mark.parametrize("status,allowed", [
    (PaymentStatus.PENDING, True),
    (PaymentStatus.APPROVED, True),
    (PaymentStatus.REJECTED, True),
    (PaymentStatus.FAILED, True),
    (PaymentStatus.PROCESSING, False),
    (PaymentStatus.COMPLETED, False),
])
def test_delete_rules(callers, db, status, allowed):
    payment = new_payment(callers, db)
    force_status(db, payment.id, status)

    if allowed:
        payment_service.delete_payment(payment.id, callers["admin"], db)
        db.expire_all()
        assert db.query(Payment).filter(Payment.id == payment.id).count() == 0
    else:
        with pytest.raises(InvalidStateError):
            payment_service.delete_payment(payment.id, callers["admin"], db)
        db.expire_all()
        assert db.query(Payment).filter(Payment.id == payment.id).count() == 1


def test_delete_requires_permission(callers, db):
    payment = new_payment(callers, db)
    with pytest.raises(ForbiddenError):
        payment_service.delete_payment(payment.id, callers["manager"], db)


def test_missing_payment(callers, db):
    with pytest.raises(NotFoundError):
        payment_service.approve_payment(9999, callers["manager"], db)


def test_list_scoping(callers, db):
    """Without payments:read_all the list is always the caller's own."""
    mine = new_payment(callers, db)
    theirs = payment_service.create_payment(PaymentCreate(amount=Decimal("10")), callers["other"], db)

    payments, total = payment_service.list_payments(callers["user"], db, user_id=callers["other"].user_id)
    assert total == 1
    assert [p.id for p in payments] == [mine.id]

    payments, total = payment_service.list_payments(callers["manager"], db)
    assert total == 2

    payments, total = payment_service.list_payments(callers["manager"], db, user_id=callers["other"].user_id)
    assert [p.id for p in payments] == [theirs.id]


def test_get_ownership(callers, db):
    payment = new_payment(callers, db)
    assert payment_service.get_payment(payment.id, callers["user"], db).id == payment.id
    assert payment_service.get_payment(payment.id, callers["manager"], db).id == payment.id
    with pytest.raises(ForbiddenError):
        payment_service.get_payment(payment.id, callers["other"], db)

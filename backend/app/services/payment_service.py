# Overview: Service-layer operations for payments; encapsulates business logic and database work.

"""
Payment Processing Service

One Payment row per order (uq_payments_order_id), upserted on every attempt.

TENDER RULES:
- COD stays PENDING until an admin marks it COMPLETED.
- Every other method completes immediately, stamps paid_at, promotes a
  PENDING order to CONFIRMED and appends a "Payment Received" tracking event.
- A COMPLETED payment cannot be paid again; cancelled orders cannot be paid.
- Retry is allowed only while the payment is PENDING or FAILED.
"""

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Order, OrderTracking, Payment, User
from ..models.sales import PAYMENT_METHODS, PAYMENT_STATUSES
from ..permissions import require_owner, require_owner_or_admin
from app.errors import NotFoundError, StateConflictError, ValidationError
from app.time_utils import start_of_day, utcnow
from app.validation import format_rupees, parse_choice, parse_int
from .concurrency import lock_for_update, run_with_retry


def _load_order_for_payment(order_id: int, user: User) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if order is None:
        raise NotFoundError("Order not found")
    require_owner(user, order.user_id, "Not authorized to pay for this order")
    return order


def _apply_payment(order: Order, method: str, transaction_id: str | None) -> Payment:
    """Upsert the order's payment for method. Does not commit."""
    is_cod = method == "COD"
    payment = order.payment
    if payment is None:
        payment = Payment(order_id=order.id, amount_cents=order.total_cents)
        db.session.add(payment)
        order.payment = payment

    payment.method = method
    payment.status = "PENDING" if is_cod else "COMPLETED"
    payment.transaction_id = transaction_id or None
    payment.paid_at = None if is_cod else utcnow()
    payment.failed_at = None
    payment.failure_reason = None
    order.payment_method = method

    if not is_cod:
        if order.status == "PENDING":
            order.status = "CONFIRMED"
            order.confirmed_at = utcnow()
        db.session.add(
            OrderTracking(
                order_id=order.id,
                status="Payment Received",
                description=f"Payment of {format_rupees(order.total_cents)} received via {method}",
            )
        )
    return payment


def process_payment(user: User, data: dict) -> Payment:
    if not data.get("orderId") or not data.get("method"):
        raise ValidationError("Order ID and payment method are required")
    try:
        order_id = parse_int(data["orderId"], "orderId", minimum=1)
    except ValidationError:
        raise ValidationError("Invalid order ID")
    method = parse_choice(data["method"], PAYMENT_METHODS, "payment method")
    transaction_id = str(data["transactionId"]).strip() if data.get("transactionId") else None

    def _op():
        order = _load_order_for_payment(order_id, user)
        if order.payment is not None and order.payment.status == "COMPLETED":
            raise StateConflictError("This order has already been paid")
        if order.status == "CANCELLED":
            raise StateConflictError("Cannot pay for a cancelled order")
        payment = _apply_payment(order, method, transaction_id)
        db.session.commit()
        return payment

    return run_with_retry(_op)


def retry_payment(user: User, order_id: int, data: dict) -> Payment:
    transaction_id = str(data["transactionId"]).strip() if data.get("transactionId") else None

    def _op():
        order = _load_order_for_payment(order_id, user)
        if order.payment is not None and order.payment.status not in ("PENDING", "FAILED"):
            raise StateConflictError("Payment cannot be retried for this order")
        if order.status == "CANCELLED":
            raise StateConflictError("Cannot pay for a cancelled order")
        fallback = order.payment.method if order.payment else "COD"
        method = parse_choice(data.get("method") or fallback, PAYMENT_METHODS, "payment method")
        payment = _apply_payment(order, method, transaction_id)
        db.session.commit()
        return payment

    return run_with_retry(_op)


def payment_for_order(order_id: int, viewer: User) -> tuple[Order, Payment | None]:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    require_owner_or_admin(viewer, order.user_id, "Not authorized to view this payment")
    return order, order.payment


def list_payments(*, page: int, limit: int, user_id: int | None = None, status: str | None = None, method: str | None = None):
    """Returns (payments_newest_first, total)."""
    query = db.session.query(Payment).join(Order, Payment.order_id == Order.id)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    if status:
        query = query.filter(Payment.status == status.strip().upper())
    if method:
        query = query.filter(Payment.method == method.strip().upper())
    total = query.count()
    payments = (
        query.order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return payments, total


def pending_payments() -> list[Payment]:
    return (
        db.session.query(Payment)
        .filter(Payment.status == "PENDING")
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )


def update_payment_status(payment_id: int, data: dict) -> Payment:
    status = parse_choice(data.get("status"), PAYMENT_STATUSES, "status")
    payment = db.session.get(Payment, payment_id)
    if payment is None:
        raise NotFoundError("Payment not found")

    payment.status = status
    if status == "COMPLETED":
        payment.paid_at = utcnow()
    elif status == "FAILED":
        payment.failed_at = utcnow()
        payment.failure_reason = data.get("failureReason") or "Payment failed"
    if data.get("transactionId"):
        payment.transaction_id = str(data["transactionId"]).strip()
    db.session.commit()
    return payment


def payment_stats() -> dict:
    def _count(*criteria):
        return db.session.query(Payment).filter(*criteria).count()

    def _sum(*criteria):
        return int(
            db.session.query(func.coalesce(func.sum(Payment.amount_cents), 0)).filter(*criteria).scalar() or 0
        )

    by_method = (
        db.session.query(Payment.method, func.count(Payment.id), func.sum(Payment.amount_cents))
        .filter(Payment.status == "COMPLETED")
        .group_by(Payment.method)
        .order_by(Payment.method)
        .all()
    )
    return {
        "totalPayments": _count(),
        "completedPayments": _count(Payment.status == "COMPLETED"),
        "pendingPayments": _count(Payment.status == "PENDING"),
        "failedPayments": _count(Payment.status == "FAILED"),
        "totalRevenueCents": _sum(Payment.status == "COMPLETED"),
        "todayRevenueCents": _sum(Payment.status == "COMPLETED", Payment.paid_at >= start_of_day(utcnow())),
        "paymentsByMethod": [
            {"method": method, "count": count, "totalCents": int(total or 0)}
            for method, count, total in by_method
        ],
    }


def payment_with_context(payment: Payment, *, include_user: bool = False) -> dict:
    data = payment.to_dict()
    order = payment.order
    data["order"] = {"id": order.id, "orderNumber": order.order_number, "status": order.status} if order else None
    if include_user and order is not None and order.user is not None:
        data["user"] = order.user.to_summary()
    return data

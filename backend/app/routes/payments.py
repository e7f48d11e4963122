# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

# backend/app/routes/payments.py
"""
Payment Processing API Routes

DESIGN:
- One payment per order, upserted on each attempt
- COD stays PENDING until an admin settles it
- Card, wallet and bank transfer payments complete immediately and confirm
  a pending order

SECURITY:
- Paying or retrying requires being the order owner
- Viewing an order's payment requires the owner or an admin
- Listing, stats and status updates are ADMIN only
"""

from flask import Blueprint, request, jsonify, g

from ..services import payment_service
from ..validation import parse_pagination, pagination_meta
from ..decorators import require_auth, require_admin


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


# =============================================================================
# CUSTOMER PAYMENTS
# =============================================================================

@payments_bp.post("")
@require_auth
def process_payment_route():
    """
    Pay for an order.

    Request body:
    {
        "orderId": 12,
        "method": "EASYPAISA",
        "transactionId": "EP-99812"  (optional)
    }

    METHODS: CREDIT_CARD, DEBIT_CARD, EASYPAISA, JAZZCASH, BANK_TRANSFER, COD
    """
    data = request.get_json(silent=True) or {}
    payment = payment_service.process_payment(g.current_user, data)
    if payment.method == "COD":
        message = "Order confirmed for Cash on Delivery. Pay when you receive your order."
    else:
        message = "Payment successful! Your order is being processed."
    return jsonify({"success": True, "message": message, "data": payment_service.payment_with_context(payment)}), 201


@payments_bp.get("/my-payments")
@require_auth
def my_payments_route():
    page, limit = parse_pagination(request.args)
    payments, total = payment_service.list_payments(page=page, limit=limit, user_id=g.current_user.id)
    return jsonify({
        "success": True,
        "count": len(payments),
        "pagination": pagination_meta(page, limit, total),
        "data": [payment_service.payment_with_context(p) for p in payments],
    })


@payments_bp.get("/order/<int:order_id>")
@require_auth
def payment_by_order_route(order_id: int):
    order, payment = payment_service.payment_for_order(order_id, g.current_user)
    return jsonify({
        "success": True,
        "data": {
            "orderNumber": order.order_number,
            "orderTotalCents": order.total_cents,
            "payment": payment.to_dict() if payment else {
                "status": "NOT_INITIATED",
                "message": "Payment not yet processed",
            },
        },
    })


@payments_bp.post("/retry/<int:order_id>")
@require_auth
def retry_payment_route(order_id: int):
    data = request.get_json(silent=True) or {}
    payment = payment_service.retry_payment(g.current_user, order_id, data)
    return jsonify({
        "success": True,
        "message": "Payment processed successfully!",
        "data": payment_service.payment_with_context(payment),
    })


# =============================================================================
# ADMIN
# =============================================================================

@payments_bp.get("")
@require_admin
def list_payments_route():
    """Query params: status, method, page, limit"""
    page, limit = parse_pagination(request.args, default_limit=20)
    payments, total = payment_service.list_payments(
        page=page, limit=limit, status=request.args.get("status"), method=request.args.get("method")
    )
    return jsonify({
        "success": True,
        "count": len(payments),
        "pagination": pagination_meta(page, limit, total),
        "data": [payment_service.payment_with_context(p, include_user=True) for p in payments],
    })


@payments_bp.get("/pending")
@require_admin
def pending_payments_route():
    payments = payment_service.pending_payments()
    return jsonify({
        "success": True,
        "count": len(payments),
        "data": [payment_service.payment_with_context(p, include_user=True) for p in payments],
    })


@payments_bp.get("/stats")
@require_admin
def payment_stats_route():
    return jsonify({"success": True, "data": payment_service.payment_stats()})


@payments_bp.put("/<int:payment_id>/status")
@require_admin
def update_payment_status_route(payment_id: int):
    """
    Request body:
    {
        "status": "COMPLETED",
        "transactionId": "BANK-5512",   (optional)
        "failureReason": "Declined"     (optional, FAILED only)
    }
    """
    data = request.get_json(silent=True) or {}
    payment = payment_service.update_payment_status(payment_id, data)
    return jsonify({
        "success": True,
        "message": f"Payment status updated to {payment.status}",
        "data": payment_service.payment_with_context(payment, include_user=True),
    })

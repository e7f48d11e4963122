# Overview: Flask API routes for order operations; parses input and returns JSON responses.

# backend/app/routes/orders.py
"""
Order API routes

CHECKOUT:
- POST /api/orders converts the caller's cart into an order in one
  transaction (stock deducted, cart deleted, "Order Placed" tracking event)

CANCELLATION:
- Owners may cancel while PENDING or CONFIRMED
- Admins may cancel at any stage but must give a reason for other users' orders
- Stock is restored exactly once

SECURITY:
- Order reads are limited to the owner or an admin
- Listing all orders, stats and status/location updates are ADMIN only
"""

from flask import Blueprint, request, jsonify, g

from ..services import order_service
from ..validation import parse_pagination, pagination_meta
from ..decorators import require_auth, require_admin


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


# =============================================================================
# CUSTOMER
# =============================================================================

@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Place an order from the active cart.

    Request body:
    {
        "shippingAddress": "House 12, Street 4, Lahore",
        "shippingPhone": "03001234567",
        "paymentMethod": "COD",   (optional)
        "notes": "Gift wrap"      (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    order = order_service.create_order(g.current_user, data)
    return jsonify({
        "success": True,
        "message": "Order placed successfully! Check your email for confirmation.",
        "data": order.to_dict(),
    }), 201


@orders_bp.get("/my-orders")
@require_auth
def my_orders_route():
    page, limit = parse_pagination(request.args)
    orders, total = order_service.list_orders(
        page=page, limit=limit, user_id=g.current_user.id, status=request.args.get("status")
    )
    return jsonify({
        "success": True,
        "count": len(orders),
        "pagination": pagination_meta(page, limit, total),
        "data": [o.to_dict() for o in orders],
    })


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    order = order_service.get_order_for(order_id, g.current_user)
    return jsonify({"success": True, "data": order.to_dict(include_details=True)})


@orders_bp.get("/<int:order_id>/tracking")
@require_auth
def order_tracking_route(order_id: int):
    order = order_service.get_order_for(order_id, g.current_user, "Not authorized to track this order")
    return jsonify({"success": True, "data": order_service.tracking_summary(order)})


@orders_bp.put("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    data = request.get_json(silent=True) or {}
    order = order_service.cancel_order(order_id, g.current_user, data.get("reason"))
    return jsonify({"success": True, "message": "Order cancelled successfully", "data": order.to_dict()})


# =============================================================================
# ADMIN
# =============================================================================

@orders_bp.get("")
@require_admin
def list_orders_route():
    """Query params: status, sort (e.g. -createdAt, totalAmount), page, limit"""
    page, limit = parse_pagination(request.args)
    orders, total = order_service.list_orders(
        page=page, limit=limit, status=request.args.get("status"), sort=request.args.get("sort")
    )
    return jsonify({
        "success": True,
        "count": len(orders),
        "pagination": pagination_meta(page, limit, total),
        "data": [o.to_dict(include_details=True) for o in orders],
    })


@orders_bp.get("/stats")
@require_admin
def order_stats_route():
    return jsonify({"success": True, "data": order_service.order_stats()})


@orders_bp.put("/<int:order_id>/status")
@require_admin
def update_order_status_route(order_id: int):
    """
    Request body:
    {
        "status": "SHIPPED",
        "description": "Handed to courier",   (optional)
        "trackingNumber": "TCS123456",        (optional)
        "courierCompany": "TCS"               (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    order = order_service.update_order_status(order_id, g.current_user, data)
    return jsonify({
        "success": True,
        "message": f"Order status updated to {order.status}. Customer notified.",
        "data": order.to_dict(include_details=True),
    })


@orders_bp.put("/<int:order_id>/location")
@orders_bp.put("/<int:order_id>/update-location", endpoint="update_location_legacy")
@require_admin
def update_location_route(order_id: int):
    data = request.get_json(silent=True) or {}
    event = order_service.add_location_update(order_id, g.current_user, data)
    return jsonify({"success": True, "message": "Order location updated", "data": event.to_dict()})

# Overview: Flask API routes for shopping cart operations; parses input and returns JSON responses.

# backend/app/routes/cart.py
"""Shopping cart routes. Every route acts on the caller's own active cart."""

from flask import Blueprint, request, jsonify, g

from ..services import cart_service
from ..decorators import require_auth


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
def get_cart_route():
    """Created on first access. Totals use current catalog prices."""
    cart = cart_service.get_or_create_cart(g.current_user.id)
    return jsonify({"success": True, "data": cart_service.cart_payload(cart)})


@cart_bp.get("/count")
@require_auth
def cart_count_route():
    return jsonify({"success": True, "data": {"count": cart_service.item_count(g.current_user.id)}})


@cart_bp.post("")
@require_auth
def add_to_cart_route():
    data = request.get_json(silent=True) or {}
    item, product, cart = cart_service.add_item(g.current_user.id, data)
    return jsonify({
        "success": True,
        "message": f"{product.name} added to cart successfully!",
        "data": {"item": item.to_dict(), "summary": cart_service.cart_summary(cart)},
    }), 201


@cart_bp.put("/<int:item_id>")
@require_auth
def update_cart_item_route(item_id: int):
    data = request.get_json(silent=True) or {}
    item = cart_service.update_item(g.current_user, item_id, data)
    return jsonify({"success": True, "message": "Cart item updated", "data": item.to_dict()})


@cart_bp.delete("/<int:item_id>")
@require_auth
def remove_cart_item_route(item_id: int):
    product_name, cart = cart_service.remove_item(g.current_user, item_id)
    return jsonify({
        "success": True,
        "message": f"{product_name} removed from cart",
        "data": {"summary": cart_service.cart_summary(cart)},
    })


@cart_bp.delete("")
@require_auth
def clear_cart_route():
    if not cart_service.clear_cart(g.current_user.id):
        return jsonify({"success": True, "message": "Cart is already empty"})
    return jsonify({"success": True, "message": "Cart cleared successfully"})

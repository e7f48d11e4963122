# Overview: Flask API routes for stock operations; parses input and returns JSON responses.

# backend/app/routes/stock.py
"""
Stock level routes (admin only).

Every write appends an InventoryLog row in the same transaction as the
stock change. Stock can never go below zero.
"""

from flask import Blueprint, request, jsonify, g

from ..services import inventory_service
from ..validation import parse_pagination, pagination_meta
from ..decorators import require_admin


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("")
@require_admin
def stock_levels_route():
    """Query params: lowStock, category, sortBy (stock|name|price|updatedAt), sortOrder, page, limit"""
    page, limit = parse_pagination(request.args, default_limit=20)
    products, total = inventory_service.list_stock_levels(request.args, page=page, limit=limit)
    return jsonify({
        "success": True,
        "count": len(products),
        "summary": inventory_service.stock_summary(),
        "pagination": pagination_meta(page, limit, total),
        "data": [p.to_stock_dict() for p in products],
    })


@stock_bp.get("/alerts")
@require_admin
def low_stock_alerts_route():
    alerts = inventory_service.low_stock_alerts(request.args.get("threshold"))
    return jsonify({
        "success": True,
        "message": f"Found {len(alerts['all'])} products with low stock",
        "data": {
            tier: {"count": len(alerts[tier]), "products": [p.to_stock_dict() for p in alerts[tier]]}
            for tier in ("outOfStock", "criticalLow", "low")
        },
        "threshold": alerts["threshold"],
    })


@stock_bp.get("/report")
@require_admin
def stock_report_route():
    return jsonify({"success": True, "data": inventory_service.stock_report()})


@stock_bp.put("/bulk")
@require_admin
def bulk_update_stock_route():
    """
    Request body:
    {
        "updates": [{"productId": 1, "quantity": 25}, {"productId": 2, "quantity": 0}]
    }
    """
    data = request.get_json(silent=True) or {}
    products = inventory_service.bulk_set_stock(data.get("updates"), g.current_user.id)
    return jsonify({
        "success": True,
        "message": f"Updated stock for {len(products)} products",
        "data": [{"id": p.id, "name": p.name, "stock": p.stock} for p in products],
    })


@stock_bp.put("/<int:product_id>")
@require_admin
def update_stock_route(product_id: int):
    """
    Request body:
    {
        "quantity": 5,
        "operation": "add"   (set | add | subtract, default set)
    }
    """
    data = request.get_json(silent=True) or {}
    product, log = inventory_service.update_stock(product_id, data, g.current_user.id)
    return jsonify({
        "success": True,
        "message": f"Stock updated successfully. New stock: {product.stock}",
        "data": {"product": product.to_stock_dict(), "log": log.to_dict()},
    })

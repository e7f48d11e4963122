# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/app/routes/inventory.py
"""
Inventory management routes (admin only).

Unlike /api/stock, manual updates here must carry a human-readable reason,
which is stored on the InventoryLog row.
"""

from flask import Blueprint, request, jsonify, g

from ..services import inventory_service
from ..validation import parse_pagination, pagination_meta
from ..decorators import require_admin


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_admin
def inventory_overview_route():
    """Query params: search, category, lowStock, sortBy, sortOrder, page, limit"""
    page, limit = parse_pagination(request.args, default_limit=20)
    products, total = inventory_service.list_stock_levels(
        request.args, page=page, limit=limit, default_sort="name", default_order="asc"
    )
    return jsonify({
        "success": True,
        "message": "Inventory retrieved successfully",
        "count": len(products),
        "summary": inventory_service.stock_summary(),
        "pagination": pagination_meta(page, limit, total),
        "data": [p.to_stock_dict() for p in products],
    })


@inventory_bp.get("/alerts")
@require_admin
def inventory_alerts_route():
    alerts = inventory_service.low_stock_alerts(request.args.get("threshold"))
    return jsonify({
        "success": True,
        "message": "Low stock alerts retrieved successfully",
        "data": {
            "all": [p.to_stock_dict() for p in alerts["all"]],
            "categorized": {
                tier: [p.to_stock_dict() for p in alerts[tier]]
                for tier in ("outOfStock", "criticalLow", "low")
            },
        },
        "summary": {
            "totalAlerts": len(alerts["all"]),
            "outOfStockCount": len(alerts["outOfStock"]),
            "criticalLowCount": len(alerts["criticalLow"]),
            "lowCount": len(alerts["low"]),
        },
    })


@inventory_bp.get("/history/<int:product_id>")
@require_admin
def inventory_history_route(product_id: int):
    page, limit = parse_pagination(request.args, default_limit=20)
    product, logs, total = inventory_service.inventory_history(product_id, page=page, limit=limit)
    return jsonify({
        "success": True,
        "message": "Inventory history retrieved successfully",
        "data": {
            "product": {"id": product.id, "name": product.name, "stock": product.stock},
            "history": [log.to_dict() for log in logs],
        },
        "pagination": pagination_meta(page, limit, total),
    })


@inventory_bp.put("/<int:product_id>")
@require_admin
def update_inventory_route(product_id: int):
    """
    Request body:
    {
        "quantity": 3,
        "operation": "subtract",          (set | add | subtract, default set)
        "reason": "Damaged in transit"    (required)
    }
    """
    data = request.get_json(silent=True) or {}
    product, log, previous = inventory_service.update_inventory_with_reason(product_id, data, g.current_user.id)
    return jsonify({
        "success": True,
        "message": f"Stock updated successfully from {previous} to {product.stock}",
        "data": {"product": product.to_stock_dict(), "log": log.to_dict()},
    })

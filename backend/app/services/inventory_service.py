# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

"""
Resin Art Inventory Invariants (authoritative)

Stock model:
- Product.stock is the live on-hand counter and is never negative.
- Every change to Product.stock appends an InventoryLog row in the same DB
  transaction (manual adjustment, bulk update, checkout, cancellation).
- Checkout deducts stock (reservation-by-deduction); cancellation restores it.

Concurrency:
- Stock writes select the product FOR UPDATE and rely on Product.version_id;
  a concurrent writer surfaces as StaleDataError and the unit of work is
  re-run by run_with_retry.

Alert tiers (active products only):
- outOfStock: stock == 0
- criticalLow: 1..CRITICAL_STOCK_THRESHOLD
- low: above critical, up to the requested threshold
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import InventoryLog, Product
from app.errors import NotFoundError, ValidationError
from app.validation import parse_int
from .concurrency import lock_for_update, run_with_retry


STOCK_OPERATIONS = ("set", "add", "subtract")
STOCK_SORT_FIELDS = {
    "stock": Product.stock,
    "name": Product.name,
    "price": Product.price_cents,
    "updatedAt": Product.updated_at,
    "createdAt": Product.created_at,
    "category": Product.category,
}


def record_stock_change(
    product: Product,
    new_stock: int,
    change_type: str,
    *,
    reason: str | None,
    user_id: int | None,
    order_id: int | None = None,
) -> InventoryLog:
    """Set product.stock and append the matching log row. Does not commit."""
    if new_stock < 0:
        raise ValidationError("Stock cannot be negative")
    log = InventoryLog(
        product_id=product.id,
        previous_stock=product.stock,
        new_stock=new_stock,
        change_amount=new_stock - product.stock,
        change_type=change_type,
        reason=reason,
        changed_by_id=user_id,
        order_id=order_id,
    )
    product.stock = new_stock
    db.session.add(log)
    return log


def _locked_product(product_id: int) -> Product:
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def compute_new_stock(current: int, quantity: int, operation: str, *, insufficient_message: str) -> int:
    if operation == "add":
        return current + quantity
    if operation == "subtract":
        new_stock = current - quantity
        if new_stock < 0:
            raise ValidationError(insufficient_message)
        return new_stock
    if quantity < 0:
        raise ValidationError("Stock cannot be negative")
    return quantity


def _parse_quantity(data: dict, message: str) -> int:
    raw = data.get("quantity")
    if raw is None or raw == "":
        raise ValidationError(message)
    try:
        return parse_int(raw, "quantity")
    except ValidationError:
        raise ValidationError(message)


def update_stock(product_id: int, data: dict, user_id: int | None) -> tuple[Product, InventoryLog]:
    """Stock endpoint: set/add/subtract with an auto-generated reason."""
    quantity = _parse_quantity(data, "Quantity is required")
    operation = str(data.get("operation") or "set").lower()
    if operation not in STOCK_OPERATIONS:
        operation = "set"

    def _op():
        product = _locked_product(product_id)
        new_stock = compute_new_stock(
            product.stock, quantity, operation, insufficient_message="Insufficient stock"
        )
        log = record_stock_change(
            product, new_stock, "MANUAL_ADJUSTMENT", reason=f"Stock {operation} operation", user_id=user_id
        )
        db.session.commit()
        return product, log

    return run_with_retry(_op)


def update_inventory_with_reason(product_id: int, data: dict, user_id: int) -> tuple[Product, InventoryLog, int]:
    """Inventory endpoint: like update_stock but the reason is mandatory. Returns (product, log, previous)."""
    quantity = _parse_quantity(data, "Quantity is required and must be a number")
    reason = str(data.get("reason") or "").strip()
    if not reason:
        raise ValidationError("Reason for stock update is required")
    operation = str(data.get("operation") or "set").lower()
    if operation not in STOCK_OPERATIONS:
        operation = "set"

    def _op():
        product = _locked_product(product_id)
        previous = product.stock
        new_stock = compute_new_stock(
            product.stock,
            quantity,
            operation,
            insufficient_message="Insufficient stock. Cannot subtract more than available.",
        )
        log = record_stock_change(product, new_stock, "MANUAL_ADJUSTMENT", reason=reason, user_id=user_id)
        db.session.commit()
        return product, log, previous

    return run_with_retry(_op)


def bulk_set_stock(updates, user_id: int | None) -> list[Product]:
    """Set absolute stock for several products in one transaction."""
    if not updates or not isinstance(updates, list):
        raise ValidationError("Updates array is required")

    parsed = []
    for entry in updates:
        if not isinstance(entry, dict):
            raise ValidationError("Each update needs productId and quantity")
        product_id = parse_int(entry.get("productId"), "productId", minimum=1)
        quantity = parse_int(entry.get("quantity"), "quantity")
        if quantity < 0:
            raise ValidationError("Stock cannot be negative")
        parsed.append((product_id, quantity))

    def _op():
        products = []
        for product_id, quantity in parsed:
            product = _locked_product(product_id)
            record_stock_change(product, quantity, "BULK_UPDATE", reason="Bulk stock update", user_id=user_id)
            products.append(product)
        db.session.commit()
        return products

    return run_with_retry(_op)


# =============================================================================
# READS
# =============================================================================

def stock_summary() -> dict:
    threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    count, total, average = (
        db.session.query(func.count(Product.id), func.sum(Product.stock), func.avg(Product.stock))
        .filter(Product.is_active.is_(True))
        .one()
    )
    low = db.session.query(Product).filter(Product.is_active.is_(True), Product.stock <= threshold).count()
    out = db.session.query(Product).filter(Product.is_active.is_(True), Product.stock == 0).count()
    return {
        "totalProducts": count or 0,
        "totalStock": int(total or 0),
        "averageStock": round(float(average or 0)),
        "lowStockCount": low,
        "outOfStockCount": out,
    }


def list_stock_levels(args, *, page: int, limit: int, default_sort: str = "stock", default_order: str = "asc"):
    """Paginated active products for the stock and inventory screens. Returns (products, total)."""
    query = db.session.query(Product).filter(Product.is_active.is_(True))

    if args.get("search"):
        query = query.filter(Product.name.ilike(f"%{args['search'].strip()}%"))
    if args.get("category"):
        query = query.filter(Product.category == args["category"].strip().upper())
    if str(args.get("lowStock", "")).lower() == "true":
        query = query.filter(Product.stock <= current_app.config["LOW_STOCK_THRESHOLD"])

    column = STOCK_SORT_FIELDS.get(args.get("sortBy") or default_sort, STOCK_SORT_FIELDS[default_sort])
    order = (args.get("sortOrder") or default_order).lower()
    query = query.order_by(column.desc() if order == "desc" else column.asc(), Product.id.asc())

    total = query.count()
    products = query.offset((page - 1) * limit).limit(limit).all()
    return products, total


def low_stock_alerts(threshold=None) -> dict:
    if threshold in (None, ""):
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    threshold = parse_int(threshold, "threshold", minimum=0)
    critical = current_app.config["CRITICAL_STOCK_THRESHOLD"]

    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock <= threshold)
        .order_by(Product.stock.asc(), Product.id.asc())
        .all()
    )
    return {
        "threshold": threshold,
        "all": products,
        "outOfStock": [p for p in products if p.stock == 0],
        "criticalLow": [p for p in products if 0 < p.stock <= critical],
        "low": [p for p in products if critical < p.stock <= threshold],
    }


def stock_report() -> dict:
    rows = (
        db.session.query(
            Product.category,
            func.count(Product.id),
            func.sum(Product.stock),
            func.avg(Product.stock),
        )
        .filter(Product.is_active.is_(True))
        .group_by(Product.category)
        .order_by(Product.category)
        .all()
    )

    def _count(*criteria):
        return db.session.query(Product).filter(Product.is_active.is_(True), *criteria).count()

    value_cents = (
        db.session.query(func.sum(Product.stock * Product.price_cents))
        .filter(Product.is_active.is_(True))
        .scalar()
    )
    return {
        "byCategory": [
            {
                "category": category,
                "productCount": count,
                "totalStock": int(total or 0),
                "averageStock": round(float(average or 0)),
            }
            for category, count, total, average in rows
        ],
        "stockDistribution": {
            "outOfStock": _count(Product.stock == 0),
            "lowStock": _count(Product.stock >= 1, Product.stock <= 10),
            "mediumStock": _count(Product.stock >= 11, Product.stock <= 50),
            "highStock": _count(Product.stock > 50),
        },
        "totalStockValueCents": int(value_cents or 0),
    }


def inventory_history(product_id: int, *, page: int, limit: int):
    """Returns (product, logs_newest_first, total)."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    query = db.session.query(InventoryLog).filter(InventoryLog.product_id == product_id)
    total = query.count()
    logs = (
        query.order_by(InventoryLog.created_at.desc(), InventoryLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return product, logs, total
# Overview: Service-layer operations for products; encapsulates business logic and database work.

from __future__ import annotations

import json

from sqlalchemy import and_, func, or_

from ..extensions import db
from ..models import CartItem, OrderItem, Product, Review
from ..models.inventory import PRODUCT_CATEGORIES
from app.errors import NotFoundError, ValidationError
from app.validation import (
    ModelValidationPolicy,
    parse_bool,
    parse_choice,
    parse_int,
    parse_money_cents,
    validate_payload,
)
from .inventory_service import record_stock_change


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "description": "description",
        "price": "price_cents",
        "discountPrice": "discount_price_cents",
        "brand": "brand",
        "model3dUrl": "model_3d_url",
        "specifications": "specifications",
        "isActive": "is_active",
        "isFeatured": "is_featured",
        "isCustomizable": "is_customizable",
    },
    required_on_create={"name", "description", "price", "category"},
    money_fields={"price", "discountPrice"},
)

SORT_FIELDS = {
    "createdAt": Product.created_at,
    "price": Product.price_cents,
    "name": Product.name,
    "stock": Product.stock,
    "rating": Product.average_rating,
    "averageRating": Product.average_rating,
    "totalReviews": Product.total_reviews,
}


def _parse_json_list(value, name: str) -> list:
    """Accept a list or a JSON-encoded list (multipart form fields arrive as strings)."""
    if value in (None, ""):
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(parsed, list):
            return parsed
    raise ValidationError(f"{name} must be a list")


def _parse_specifications(value):
    if isinstance(value, str) and value.strip():
        try:
            return json.loads(value)
        except ValueError:
            raise ValidationError("specifications must be a JSON object")
    return value


def _search_filter(term: str):
    pattern = f"%{term}%"
    return or_(Product.name.ilike(pattern), Product.description.ilike(pattern), Product.brand.ilike(pattern))


def _price_filter(min_cents: int | None, max_cents: int | None):
    """Match on the price a customer pays: the discount price when set, else the list price."""
    discounted = [Product.discount_price_cents.isnot(None)]
    undiscounted = [Product.discount_price_cents.is_(None)]
    if min_cents is not None:
        discounted.append(Product.discount_price_cents >= min_cents)
        undiscounted.append(Product.price_cents >= min_cents)
    if max_cents is not None:
        discounted.append(Product.discount_price_cents <= max_cents)
        undiscounted.append(Product.price_cents <= max_cents)
    return or_(and_(*discounted), and_(*undiscounted))


def list_products(args, *, page: int, limit: int) -> tuple[list[Product], int]:
    query = db.session.query(Product).filter(Product.is_active.is_(True))

    search = (args.get("search") or "").strip()
    if search:
        query = query.filter(_search_filter(search))
    if args.get("category"):
        query = query.filter(Product.category == args["category"].strip().upper())

    min_price = parse_money_cents(args["minPrice"], "minPrice") if args.get("minPrice") else None
    max_price = parse_money_cents(args["maxPrice"], "maxPrice") if args.get("maxPrice") else None
    if min_price is not None or max_price is not None:
        query = query.filter(_price_filter(min_price, max_price))

    if parse_bool(args.get("featured", False)):
        query = query.filter(Product.is_featured.is_(True))
    if parse_bool(args.get("inStock", False)):
        query = query.filter(Product.stock > 0)

    sort = args.get("sort") or "-createdAt"
    descending = sort.startswith("-")
    column = SORT_FIELDS.get(sort.lstrip("-"), Product.created_at)
    query = query.order_by(column.desc() if descending else column.asc(), Product.id.desc())

    total = query.count()
    return query.offset((page - 1) * limit).limit(limit).all(), total


def featured_products(limit: int = 8) -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.is_featured.is_(True))
        .order_by(Product.created_at.desc(), Product.id.desc())
        .limit(limit)
        .all()
    )


def quick_search(term: str | None, limit: int = 10) -> list[Product]:
    term = (term or "").strip()
    if len(term) < 2:
        return []
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), _search_filter(term))
        .order_by(Product.name.asc())
        .limit(limit)
        .all()
    )


def categories_with_counts() -> list[dict]:
    rows = (
        db.session.query(Product.category, func.count(Product.id))
        .filter(Product.is_active.is_(True))
        .group_by(Product.category)
        .order_by(Product.category)
        .all()
    )
    return [{"name": category, "count": count} for category, count in rows]


def products_by_category(category: str, *, page: int, limit: int) -> tuple[list[Product], int]:
    query = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.category == category.strip().upper())
        .order_by(Product.created_at.desc(), Product.id.desc())
    )
    total = query.count()
    return query.offset((page - 1) * limit).limit(limit).all(), total


def get_product(product_id: int, *, viewer=None) -> Product:
    """Inactive products are hidden from everyone except admins."""
    product = db.session.get(Product, product_id)
    if product is None or (not product.is_active and not (viewer and viewer.is_admin)):
        raise NotFoundError("Product not found")
    return product


def latest_reviews(product_id: int, limit: int = 10) -> list[Review]:
    return (
        db.session.query(Review)
        .filter(Review.product_id == product_id, Review.is_approved.is_(True))
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(limit)
        .all()
    )


def _validate_discount(price_cents: int, discount_cents: int | None) -> None:
    if discount_cents is not None and discount_cents > price_cents:
        raise ValidationError("Discount price cannot exceed the regular price")


def create_product(data: dict, *, user_id: int, image_urls: list[str] | None = None) -> Product:
    if not all(data.get(k) not in (None, "") for k in ("name", "description", "price", "category")):
        raise ValidationError("Please provide name, description, price, and category")

    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=False)
    _validate_discount(patch["price_cents"], patch.get("discount_price_cents"))

    stock = parse_int(data.get("stock") or 0, "stock", minimum=0)
    product = Product(
        category=parse_choice(data["category"], PRODUCT_CATEGORIES, "category"),
        stock=0,
        images=list(image_urls or []) or _parse_json_list(data.get("images"), "images"),
        tags=_parse_json_list(data.get("tags"), "tags"),
        created_by_id=user_id,
        **{k: v for k, v in patch.items() if k != "specifications"},
    )
    product.specifications = _parse_specifications(data.get("specifications")) or {}
    db.session.add(product)
    db.session.flush()

    if stock:
        record_stock_change(product, stock, "MANUAL_ADJUSTMENT", reason="Initial stock", user_id=user_id)

    db.session.commit()
    return product


def update_product(product_id: int, data: dict, *, user_id: int, new_image_urls: list[str] | None = None) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=True)
    if "specifications" in patch:
        patch["specifications"] = _parse_specifications(patch["specifications"])
    for key, value in patch.items():
        setattr(product, key, value)
    _validate_discount(product.price_cents, product.discount_price_cents)

    if data.get("category") not in (None, ""):
        product.category = parse_choice(data["category"], PRODUCT_CATEGORIES, "category")
    if "tags" in data:
        product.tags = _parse_json_list(data.get("tags"), "tags")
    if "existingImages" in data or new_image_urls:
        kept = _parse_json_list(data.get("existingImages"), "existingImages") if "existingImages" in data else (product.images or [])
        product.images = list(kept) + list(new_image_urls or [])

    if data.get("stock") not in (None, ""):
        stock = parse_int(data["stock"], "stock", minimum=0)
        if stock != product.stock:
            record_stock_change(product, stock, "MANUAL_ADJUSTMENT", reason="Product edit", user_id=user_id)

    db.session.commit()
    return product


def _history_counts(product_id: int) -> tuple[int, int]:
    orders = db.session.query(OrderItem).filter(OrderItem.product_id == product_id).count()
    reviews = db.session.query(Review).filter(Review.product_id == product_id).count()
    return orders, reviews


def _purge_product(product: Product, *, include_order_items: bool) -> None:
    if include_order_items:
        db.session.query(OrderItem).filter(OrderItem.product_id == product.id).delete(synchronize_session=False)
    db.session.query(Review).filter(Review.product_id == product.id).delete(synchronize_session=False)
    db.session.query(CartItem).filter(CartItem.product_id == product.id).delete(synchronize_session=False)
    db.session.delete(product)


def delete_product(product_id: int, *, force: bool) -> dict:
    """
    Soft delete (deactivate) by default. A product with history asks for
    confirmation first; force=True removes it and its related rows.

    Returns {"deleted": bool, "warning": bool, "orderCount", "reviewCount"}.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    order_count, review_count = _history_counts(product_id)
    result = {"orderCount": order_count, "reviewCount": review_count, "warning": False, "hardDeleted": False}

    if (order_count or review_count) and not force:
        result["warning"] = True
        return result

    if force:
        _purge_product(product, include_order_items=True)
        result["hardDeleted"] = True
    else:
        product.is_active = False
    db.session.commit()
    return result


def permanent_delete_product(product_id: int) -> None:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    order_count, _ = _history_counts(product_id)
    if order_count:
        raise ValidationError("Cannot permanently delete product with existing orders. Use soft delete instead.")
    _purge_product(product, include_order_items=False)
    db.session.commit()

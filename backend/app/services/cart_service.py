# Overview: Service-layer operations for the shopping cart; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Cart, CartItem, Product
from ..permissions import require_owner
from app.errors import NotFoundError, ValidationError
from app.validation import parse_int


def find_active_cart(user_id: int) -> Cart | None:
    return db.session.query(Cart).filter_by(user_id=user_id, is_active=True).first()


def get_or_create_cart(user_id: int) -> Cart:
    """
    Return the user's active cart, creating it on first access.

    Two concurrent first requests race on uq_carts_user_active; the loser
    rolls back and reads the winner's row.
    """
    cart = find_active_cart(user_id)
    if cart is not None:
        return cart

    cart = Cart(user_id=user_id, is_active=True)
    db.session.add(cart)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        cart = find_active_cart(user_id)
        if cart is None:
            raise
    return cart


def cart_summary(cart: Cart | None) -> dict:
    """Totals at current catalog prices."""
    items = cart.items if cart is not None else []
    total_items = sum(item.quantity for item in items)
    subtotal = sum(item.product.unit_price_cents * item.quantity for item in items if item.product)
    return {"totalItems": total_items, "subtotalCents": subtotal}


def cart_payload(cart: Cart) -> dict:
    items = sorted(cart.items, key=lambda item: item.id, reverse=True)
    return {
        "cartId": cart.id,
        "items": [item.to_dict() for item in items],
        "summary": cart_summary(cart),
    }


def add_item(user_id: int, data: dict) -> tuple[CartItem, Product, Cart]:
    if not data.get("productId"):
        raise ValidationError("Product ID is required")
    try:
        product_id = parse_int(data["productId"], "productId", minimum=1)
        quantity = parse_int(data.get("quantity", 1), "quantity", minimum=1)
    except ValidationError:
        raise ValidationError("Invalid product ID or quantity")

    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    if not product.is_active:
        raise ValidationError("This product is no longer available")
    if product.stock < quantity:
        raise ValidationError(f"Insufficient stock. Only {product.stock} available.")

    cart = get_or_create_cart(user_id)
    customization = data.get("customization") or None

    item = db.session.query(CartItem).filter_by(cart_id=cart.id, product_id=product.id).first()
    if item is not None:
        new_quantity = item.quantity + quantity
        if product.stock < new_quantity:
            raise ValidationError(
                f"Cannot add {quantity} more. Only {product.stock - item.quantity} more available."
            )
        item.quantity = new_quantity
        if customization:
            item.customization = customization
    else:
        item = CartItem(
            cart_id=cart.id,
            product_id=product.id,
            quantity=quantity,
            price_cents=product.unit_price_cents,
            customization=customization,
        )
        db.session.add(item)

    db.session.commit()
    db.session.refresh(cart)
    return item, product, cart


def _get_own_item(user, item_id: int) -> CartItem:
    item = db.session.get(CartItem, item_id)
    if item is None:
        raise NotFoundError("Cart item not found")
    require_owner(user, item.cart.user_id, "Not authorized to modify this cart")
    return item


def update_item(user, item_id: int, data: dict) -> CartItem:
    item = _get_own_item(user, item_id)

    if "quantity" in data and data["quantity"] is not None:
        try:
            quantity = parse_int(data["quantity"], "quantity", minimum=1)
        except ValidationError:
            raise ValidationError("Quantity must be at least 1")
        if item.product.stock < quantity:
            raise ValidationError(f"Only {item.product.stock} available in stock")
        item.quantity = quantity

    if "customization" in data:
        item.customization = data["customization"] or None

    db.session.commit()
    return item


def remove_item(user, item_id: int) -> tuple[str, Cart]:
    item = _get_own_item(user, item_id)
    cart = item.cart
    product_name = item.product.name if item.product else "Item"
    cart.items.remove(item)
    db.session.commit()
    return product_name, cart


def clear_cart(user_id: int) -> bool:
    """Delete every item from the active cart. Returns False when there was no cart."""
    cart = find_active_cart(user_id)
    if cart is None:
        return False
    db.session.query(CartItem).filter_by(cart_id=cart.id).delete(synchronize_session=False)
    db.session.commit()
    db.session.expire(cart)
    return True


def item_count(user_id: int) -> int:
    cart = find_active_cart(user_id)
    return cart_summary(cart)["totalItems"] if cart else 0

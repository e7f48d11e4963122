# Overview: Service-layer operations for orders; checkout, cancellation and the admin status workflow.

"""
Order Workflow

CHECKOUT (create_order):
- Reads the user's active cart, locks every product in it, validates
  availability and stock, prices each line (discount price wins), then in
  ONE transaction inserts the order and its items, deducts stock (with an
  InventoryLog row per line), appends the "Order Placed" tracking event and
  deletes the cart.
- Order numbers are RA-<year>-<nnnnnn>. Two concurrent checkouts can compute
  the same number; the loser hits uq_orders_order_number, the unit of work
  is rolled back and re-run with a fresh number.

CANCELLATION (cancel_order):
- Owners may cancel while PENDING or CONFIRMED. Admins may cancel at any
  stage but must give a reason when the order is not theirs.
- A CANCELLED order is terminal: a second cancel is rejected, so stock is
  restored exactly once.

STATUS UPDATES (update_order_status, admin):
- Any status may follow any other, except that CANCELLED runs the
  cancellation workflow and a cancelled order cannot be revived.

Notifications (in-app + email) are dispatched only after commit and never
fail the request.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Cart, Delivery, Order, OrderItem, OrderTracking, Product, User
from ..models.sales import CANCELLABLE_BY_OWNER, ORDER_STATUSES, PAYMENT_METHODS
from ..permissions import require_owner_or_admin
from app.errors import NotFoundError, StateConflictError, ValidationError
from app.time_utils import start_of_day, utcnow, year_start
from app.validation import parse_choice
from . import email_service, notification_service
from .concurrency import OrderNumberCollision, lock_for_update, run_with_retry
from .inventory_service import record_stock_change


ORDER_SORT_FIELDS = {
    "createdAt": Order.created_at,
    "totalAmount": Order.total_cents,
    "total": Order.total_cents,
    "status": Order.status,
    "orderNumber": Order.order_number,
}


def calculate_shipping_cents(subtotal_cents: int) -> int:
    config = current_app.config
    if subtotal_cents >= config["FREE_SHIPPING_THRESHOLD_CENTS"]:
        return 0
    return config["FLAT_SHIPPING_FEE_CENTS"]


def next_order_number(now=None) -> str:
    """
    RA-<year>-<counter>, counter = orders created this year + 1.

    Never goes below the highest suffix already issued this year, so deleted
    orders cannot cause a number to be handed out twice.
    """
    now = now or utcnow()
    prefix = f"{current_app.config['ORDER_NUMBER_PREFIX']}-{now.year}-"

    count = db.session.query(Order).filter(Order.created_at >= year_start(now.year)).count()
    highest = (
        db.session.query(func.max(Order.order_number))
        .filter(Order.order_number.like(f"{prefix}%"))
        .scalar()
    )
    highest_counter = int(highest[len(prefix):]) if highest and highest[len(prefix):].isdigit() else 0
    return f"{prefix}{max(count, highest_counter) + 1:06d}"


ORDER_NUMBER_CONSTRAINT = "uq_orders_order_number"


def _is_order_number_conflict(exc: IntegrityError) -> bool:
    """
    PostgreSQL and MySQL name the violated constraint; SQLite only reports
    "UNIQUE constraint failed: orders.order_number".
    """
    orig = getattr(exc, "orig", exc)
    diag = getattr(orig, "diag", None)
    if diag is not None and getattr(diag, "constraint_name", None):
        return diag.constraint_name == ORDER_NUMBER_CONSTRAINT
    raw = str(orig)
    return ORDER_NUMBER_CONSTRAINT in raw or "orders.order_number" in raw


def _add_tracking(order: Order, status: str, description: str | None, *, user_id: int | None = None, location: str | None = None) -> OrderTracking:
    event = OrderTracking(
        order_id=order.id,
        status=status,
        description=description,
        location=location,
        updated_by_id=user_id,
    )
    db.session.add(event)
    return event


# =============================================================================
# CHECKOUT
# =============================================================================

def create_order(user: User, data: dict) -> Order:
    shipping_address = str(data.get("shippingAddress") or "").strip()
    shipping_phone = str(data.get("shippingPhone") or "").strip()
    if not shipping_address or not shipping_phone:
        raise ValidationError("Please provide shipping address and phone number")

    payment_method = None
    if data.get("paymentMethod"):
        payment_method = parse_choice(data["paymentMethod"], PAYMENT_METHODS, "payment method")
    notes = str(data.get("notes")).strip() if data.get("notes") else None

    def _op():
        cart = db.session.query(Cart).filter_by(user_id=user.id, is_active=True).first()
        if cart is None or not cart.items:
            raise ValidationError("Your cart is empty")

        product_ids = sorted({item.product_id for item in cart.items})
        products = {
            p.id: p
            for p in lock_for_update(
                db.session.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id)
            ).all()
        }

        lines = []
        subtotal = 0
        for item in cart.items:
            product = products.get(item.product_id)
            if product is None or not product.is_active:
                name = product.name if product else "A product in your cart"
                raise ValidationError(f"{name} is no longer available")
            if product.stock < item.quantity:
                raise ValidationError(
                    f"Insufficient stock for {product.name}. Only {product.stock} available."
                )
            unit_price = product.unit_price_cents
            subtotal += unit_price * item.quantity
            lines.append((item, product, unit_price))

        shipping = calculate_shipping_cents(subtotal)
        tax = 0
        order = Order(
            order_number=next_order_number(),
            user_id=user.id,
            status="PENDING",
            subtotal_cents=subtotal,
            discount_cents=0,
            shipping_cents=shipping,
            tax_cents=tax,
            total_cents=subtotal + shipping + tax,
            shipping_address=shipping_address,
            shipping_phone=shipping_phone,
            payment_method=payment_method,
            notes=notes,
        )
        for item, product, unit_price in lines:
            order.items.append(
                OrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    product_image=product.primary_image,
                    quantity=item.quantity,
                    price_cents=unit_price,
                    customization=item.customization,
                )
            )
        db.session.add(order)
        try:
            db.session.flush()
        except IntegrityError as exc:
            if _is_order_number_conflict(exc):
                raise OrderNumberCollision(order.order_number) from exc
            raise

        for item, product, _ in lines:
            record_stock_change(
                product,
                product.stock - item.quantity,
                "ORDER_PLACED",
                reason=f"Order {order.order_number}",
                user_id=user.id,
                order_id=order.id,
            )

        _add_tracking(order, "Order Placed", "Your order has been placed successfully")
        db.session.delete(cart)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s placed by user %s", order.order_number, user.id)

    notification_service.dispatch(
        user=user,
        title="Order Placed",
        message=f"Your order {order.order_number} has been placed successfully.",
        related_data={"orderId": order.id, "orderNumber": order.order_number},
        email=email_service.order_confirmation_email(order, user.name),
    )
    return order


# =============================================================================
# CANCELLATION
# =============================================================================

def _load_order(order_id: int, *, lock: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def _cancel_in_session(order: Order, actor: User, reason: str | None) -> None:
    """State change and stock restoration for a cancellation. Does not commit."""
    order.status = "CANCELLED"
    order.cancelled_at = utcnow()
    order.cancellation_reason = reason or "Cancelled by customer"

    product_ids = sorted({item.product_id for item in order.items})
    products = {
        p.id: p
        for p in lock_for_update(
            db.session.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id)
        ).all()
    }
    for item in order.items:
        product = products.get(item.product_id)
        if product is None:
            continue
        record_stock_change(
            product,
            product.stock + item.quantity,
            "ORDER_CANCELLED",
            reason=f"Order {order.order_number} cancelled",
            user_id=actor.id,
            order_id=order.id,
        )

    _add_tracking(order, "Cancelled", reason or "Order cancelled by customer", user_id=actor.id)


def _notify_status(order: Order, status: str, title: str, message: str) -> None:
    notification_service.dispatch(
        user=order.user,
        title=title,
        message=message,
        related_data={"orderId": order.id, "orderNumber": order.order_number, "status": status},
        email=email_service.order_status_email(order, order.user.name, status),
    )


def cancel_order(order_id: int, actor: User, reason: str | None = None) -> Order:
    reason = str(reason).strip() if reason else None

    def _op():
        order = _load_order(order_id, lock=True)
        require_owner_or_admin(actor, order.user_id, "Not authorized to cancel this order")

        is_owner = order.user_id == actor.id
        if order.status == "CANCELLED":
            raise StateConflictError("Order is already cancelled")
        if not actor.is_admin and order.status not in CANCELLABLE_BY_OWNER:
            raise StateConflictError("Order cannot be cancelled at this stage. Please contact support.")
        if actor.is_admin and not is_owner and not reason:
            raise ValidationError("Admin must provide a reason for cancellation")

        _cancel_in_session(order, actor, reason)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s cancelled by user %s", order.order_number, actor.id)
    _notify_status(
        order,
        "CANCELLED",
        "Order Cancelled",
        f"Your order {order.order_number} has been cancelled. Reason: {order.cancellation_reason}",
    )
    return order


# =============================================================================
# ADMIN STATUS WORKFLOW
# =============================================================================

def _upsert_delivery(order: Order, new_status: str, tracking_number: str | None, courier_company: str | None) -> Delivery:
    delivery = order.delivery
    if delivery is None:
        delivery = Delivery(
            order_id=order.id,
            status="SHIPPED" if new_status == "SHIPPED" else "PENDING",
            tracking_number=tracking_number,
            courier_company=courier_company,
            address=order.shipping_address,
            city="",
            country="Pakistan",
        )
        db.session.add(delivery)
        order.delivery = delivery
        return delivery

    delivery.status = "DELIVERED" if new_status == "DELIVERED" else "SHIPPED"
    if tracking_number:
        delivery.tracking_number = tracking_number
    if courier_company:
        delivery.courier_company = courier_company
    if new_status == "DELIVERED":
        delivery.actual_delivery = utcnow()
    return delivery


def update_order_status(order_id: int, actor: User, data: dict) -> Order:
    new_status = parse_choice(data.get("status"), ORDER_STATUSES, "status")
    description = str(data.get("description")).strip() if data.get("description") else None
    tracking_number = str(data.get("trackingNumber")).strip() if data.get("trackingNumber") else None
    courier_company = str(data.get("courierCompany")).strip() if data.get("courierCompany") else None

    if new_status == "CANCELLED":
        return cancel_order(order_id, actor, description or "Cancelled by admin")

    def _op():
        order = _load_order(order_id, lock=True)
        if order.status == "CANCELLED":
            raise StateConflictError("Cancelled orders cannot be moved to another status")

        now = utcnow()
        order.status = new_status
        if new_status == "CONFIRMED":
            order.confirmed_at = now
        elif new_status == "SHIPPED":
            order.shipped_at = now
        elif new_status == "DELIVERED":
            order.delivered_at = now

        _add_tracking(order, new_status, description or f"Order status updated to {new_status}", user_id=actor.id)

        if new_status == "SHIPPED" or tracking_number or courier_company:
            _upsert_delivery(order, new_status, tracking_number, courier_company)

        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s moved to %s by user %s", order.order_number, new_status, actor.id)
    _notify_status(
        order,
        new_status,
        "Order Update",
        email_service.STATUS_MESSAGES.get(new_status, f"Your order status has been updated to: {new_status}"),
    )
    return order


def add_location_update(order_id: int, actor: User, data: dict) -> OrderTracking:
    location = str(data.get("location") or "").strip()
    if not location:
        raise ValidationError("Location is required")
    order = _load_order(order_id)
    if order.status == "CANCELLED":
        raise StateConflictError("Cannot update the location of a cancelled order")

    description = str(data.get("description")).strip() if data.get("description") else f"Package is at {location}"
    event = _add_tracking(order, "Location Update", description, user_id=actor.id, location=location)
    db.session.commit()
    return event


# =============================================================================
# READS
# =============================================================================

def list_orders(*, page: int, limit: int, user_id: int | None = None, status: str | None = None, sort: str | None = None):
    """Paginated orders, newest first by default. Returns (orders, total)."""
    query = db.session.query(Order)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    if status:
        query = query.filter(Order.status == status.strip().upper())

    sort = sort or "-createdAt"
    column = ORDER_SORT_FIELDS.get(sort.lstrip("-"), Order.created_at)
    query = query.order_by(column.desc() if sort.startswith("-") else column.asc(), Order.id.desc())

    total = query.count()
    return query.offset((page - 1) * limit).limit(limit).all(), total


def get_order_for(order_id: int, viewer: User, message: str = "Not authorized to view this order") -> Order:
    order = _load_order(order_id)
    require_owner_or_admin(viewer, order.user_id, message)
    return order


def tracking_summary(order: Order) -> dict:
    delivery = order.delivery.to_dict() if order.delivery else None
    return {
        "orderNumber": order.order_number,
        "currentStatus": order.status,
        "delivery": {
            key: delivery[key]
            for key in ("status", "courierCompany", "trackingNumber", "estimatedDelivery", "actualDelivery")
        } if delivery else None,
        "trackingHistory": [event.to_dict() for event in order.tracking],
    }


def order_stats() -> dict:
    def _count(*criteria):
        return db.session.query(Order).filter(*criteria).count()

    today = start_of_day(utcnow())
    today_revenue = (
        db.session.query(func.coalesce(func.sum(Order.total_cents), 0))
        .filter(Order.created_at >= today, Order.status != "CANCELLED")
        .scalar()
    )
    return {
        "totalOrders": _count(),
        "pendingOrders": _count(Order.status == "PENDING"),
        "confirmedOrders": _count(Order.status == "CONFIRMED"),
        "processingOrders": _count(Order.status == "PROCESSING"),
        "shippedOrders": _count(Order.status == "SHIPPED"),
        "deliveredOrders": _count(Order.status == "DELIVERED"),
        "cancelledOrders": _count(Order.status == "CANCELLED"),
        "todayOrders": _count(Order.created_at >= today),
        "todayRevenueCents": int(today_revenue or 0),
    }

from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z

ORDER_STATUSES = ("PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED")
CANCELLABLE_BY_OWNER = ("PENDING", "CONFIRMED")

PAYMENT_METHODS = ("CREDIT_CARD", "DEBIT_CARD", "EASYPAISA", "JAZZCASH", "BANK_TRANSFER", "COD")
PAYMENT_STATUSES = ("PENDING", "COMPLETED", "FAILED", "REFUNDED")

DELIVERY_STATUSES = ("PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "RETURNED")


class Cart(db.Model):
    """
    Shopping cart. A user has at most one active cart; it is created on first
    access and deleted once its contents become an order. The unique index
    covers active rows only, so inactive carts are not limited.
    """
    __tablename__ = "carts"
    __table_args__ = (
        db.Index(
            "uq_carts_user_active",
            "user_id",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("carts", lazy=True, passive_deletes=True))
    items = db.relationship(
        "CartItem",
        backref="cart",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )


class CartItem(db.Model):
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    customization = db.Column(db.Text, nullable=True)

    # Unit price captured when the item was added
    price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        product = self.product
        current_price = product.unit_price_cents if product else self.price_cents
        return {
            "id": self.id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "customization": self.customization,
            "priceCents": self.price_cents,
            "currentPriceCents": current_price,
            "itemTotalCents": current_price * self.quantity,
            "inStock": bool(product and product.is_active and product.stock >= self.quantity),
            "product": product.to_summary() if product else None,
        }


class Order(db.Model):
    """
    Customer order built from a cart snapshot.

    Totals are frozen at checkout. Milestone timestamps are stamped as the
    status moves forward; cancelled_at and cancellation_reason are set once.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        db.Index("ix_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="PENDING")

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    shipping_address = db.Column(db.Text, nullable=False)
    shipping_phone = db.Column(db.String(20), nullable=False)
    payment_method = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    ordered_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    shipped_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("orders", lazy=True, passive_deletes=True))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    tracking = db.relationship(
        "OrderTracking",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderTracking.id.desc()",
    )
    payment = db.relationship("Payment", backref="order", uselist=False, cascade="all, delete-orphan")
    delivery = db.relationship("Delivery", backref="order", uselist=False, cascade="all, delete-orphan")

    def to_dict(self, *, include_details: bool = False) -> dict:
        data = {
            "id": self.id,
            "orderNumber": self.order_number,
            "userId": self.user_id,
            "status": self.status,
            "subtotalCents": self.subtotal_cents,
            "discountCents": self.discount_cents,
            "shippingCents": self.shipping_cents,
            "taxCents": self.tax_cents,
            "totalCents": self.total_cents,
            "shippingAddress": self.shipping_address,
            "shippingPhone": self.shipping_phone,
            "paymentMethod": self.payment_method,
            "notes": self.notes,
            "orderedAt": to_utc_z(self.ordered_at),
            "confirmedAt": to_utc_z(self.confirmed_at),
            "shippedAt": to_utc_z(self.shipped_at),
            "deliveredAt": to_utc_z(self.delivered_at),
            "cancelledAt": to_utc_z(self.cancelled_at),
            "cancellationReason": self.cancellation_reason,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "items": [item.to_dict() for item in self.items],
            "payment": self.payment.to_dict() if self.payment else None,
        }
        if include_details:
            data["user"] = self.user.to_summary() if self.user else None
            data["delivery"] = self.delivery.to_dict() if self.delivery else None
            data["tracking"] = [event.to_dict() for event in self.tracking]
        return data


class OrderItem(db.Model):
    """Immutable line captured at checkout; product fields are copied, not referenced live."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(150), nullable=False)
    product_image = db.Column(db.String(255), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    customization = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "productName": self.product_name,
            "productImage": self.product_image,
            "quantity": self.quantity,
            "priceCents": self.price_cents,
            "lineTotalCents": self.line_total_cents,
            "customization": self.customization,
        }


class OrderTracking(db.Model):
    __tablename__ = "order_tracking"
    __table_args__ = (
        db.Index("ix_order_tracking_order_created", "order_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    status = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=True)
    location = db.Column(db.String(255), nullable=True)
    updated_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "description": self.description,
            "location": self.location,
            "updatedBy": self.updated_by_id,
            "createdAt": to_utc_z(self.created_at),
        }


class Delivery(db.Model):
    __tablename__ = "deliveries"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_deliveries_order_id"),
        db.UniqueConstraint("tracking_number", name="uq_deliveries_tracking_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    tracking_number = db.Column(db.String(64), nullable=True)
    courier_company = db.Column(db.String(100), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="PENDING")

    address = db.Column(db.Text, nullable=False)
    city = db.Column(db.String(100), nullable=False, default="")
    postal_code = db.Column(db.String(20), nullable=True)
    country = db.Column(db.String(100), nullable=False, default="Pakistan")

    estimated_delivery = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_delivery = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "trackingNumber": self.tracking_number,
            "courierCompany": self.courier_company,
            "status": self.status,
            "address": self.address,
            "city": self.city,
            "postalCode": self.postal_code,
            "country": self.country,
            "estimatedDelivery": to_utc_z(self.estimated_delivery),
            "actualDelivery": to_utc_z(self.actual_delivery),
        }


class Payment(db.Model):
    """
    One payment per order. COD stays PENDING until settled by an admin;
    online methods complete immediately and confirm the order.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_payments_order_id"),
        db.UniqueConstraint("transaction_id", name="uq_payments_transaction_id"),
        db.Index("ix_payments_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    method = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="PENDING")
    amount_cents = db.Column(db.Integer, nullable=False)
    transaction_id = db.Column(db.String(64), nullable=True)

    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    failed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    failure_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "method": self.method,
            "status": self.status,
            "amountCents": self.amount_cents,
            "transactionId": self.transaction_id,
            "paidAt": to_utc_z(self.paid_at),
            "failedAt": to_utc_z(self.failed_at),
            "failureReason": self.failure_reason,
            "createdAt": to_utc_z(self.created_at),
        }

from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z

PRODUCT_CATEGORIES = (
    "JEWELRY",
    "HOME_DECOR",
    "COASTERS",
    "KEYCHAINS",
    "WALL_ART",
    "TRAYS",
    "BOOKMARKS",
    "PHONE_CASES",
    "CLOCKS",
    "CUSTOM",
)

INVENTORY_CHANGE_TYPES = (
    "MANUAL_ADJUSTMENT",
    "BULK_UPDATE",
    "ORDER_PLACED",
    "ORDER_CANCELLED",
)


class Product(db.Model):
    """
    Catalog entry with a live stock counter.

    Stock is decremented at checkout and restored on cancellation. The
    version column turns concurrent stock writes into StaleDataError so the
    losing transaction is retried instead of silently overwriting.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category", "category"),
        db.Index("ix_products_price_cents", "price_cents"),
        db.Index("ix_products_active_featured", "is_active", "is_featured"),
        db.Index("ix_products_name", "name"),
        db.CheckConstraint("stock >= 0", name="stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=False)

    # Prices in paisa; discount price wins when set
    price_cents = db.Column(db.Integer, nullable=False)
    discount_price_cents = db.Column(db.Integer, nullable=True)

    category = db.Column(db.String(32), nullable=False)
    brand = db.Column(db.String(100), nullable=True)
    stock = db.Column(db.Integer, nullable=False, default=0)

    images = db.Column(db.JSON, nullable=True)
    model_3d_url = db.Column(db.String(255), nullable=True)
    tags = db.Column(db.JSON, nullable=True)
    specifications = db.Column(db.JSON, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_featured = db.Column(db.Boolean, nullable=False, default=False)
    is_customizable = db.Column(db.Boolean, nullable=False, default=False)

    # Denormalized from approved reviews
    average_rating = db.Column(db.Float, nullable=False, default=0)
    total_reviews = db.Column(db.Integer, nullable=False, default=0)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    created_by = db.relationship("User", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def unit_price_cents(self) -> int:
        return self.discount_price_cents or self.price_cents

    @property
    def primary_image(self) -> str | None:
        return self.images[0] if self.images else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "priceCents": self.price_cents,
            "discountPriceCents": self.discount_price_cents,
            "category": self.category,
            "brand": self.brand,
            "stock": self.stock,
            "images": self.images or [],
            "model3dUrl": self.model_3d_url,
            "tags": self.tags or [],
            "specifications": self.specifications or {},
            "isActive": self.is_active,
            "isFeatured": self.is_featured,
            "isCustomizable": self.is_customizable,
            "averageRating": round(self.average_rating or 0, 2),
            "totalReviews": self.total_reviews,
            "createdById": self.created_by_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "priceCents": self.price_cents,
            "discountPriceCents": self.discount_price_cents,
            "images": self.images or [],
            "category": self.category,
            "stock": self.stock,
            "isActive": self.is_active,
        }

    def to_stock_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "stock": self.stock,
            "priceCents": self.price_cents,
            "images": self.images or [],
            "isActive": self.is_active,
            "updatedAt": to_utc_z(self.updated_at),
        }


class InventoryLog(db.Model):
    """Append-only record of every stock change (manual or order-driven)."""
    __tablename__ = "inventory_logs"
    __table_args__ = (
        db.Index("ix_inventory_logs_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)
    change_amount = db.Column(db.Integer, nullable=False)
    change_type = db.Column(db.String(32), nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    changed_by_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("inventory_logs", lazy=True, passive_deletes=True))
    changed_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "previousStock": self.previous_stock,
            "newStock": self.new_stock,
            "changeAmount": self.change_amount,
            "changeType": self.change_type,
            "reason": self.reason,
            "orderId": self.order_id,
            "changedBy": self.changed_by.to_summary() if self.changed_by else None,
            "createdAt": to_utc_z(self.created_at),
        }

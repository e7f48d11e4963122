from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


class Review(db.Model):
    """Product review; one per (user, product). Only approved reviews count toward ratings."""
    __tablename__ = "reviews"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_reviews_user_product"),
        db.Index("ix_reviews_product_approved", "product_id", "is_approved"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="rating_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    is_approved = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("reviews", lazy=True, passive_deletes=True))
    product = db.relationship("Product", backref=db.backref("reviews", lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "productId": self.product_id,
            "rating": self.rating,
            "comment": self.comment,
            "isApproved": self.is_approved,
            "user": {"id": self.user.id, "name": self.user.name, "profileImage": self.user.profile_image}
            if self.user else None,
            "product": {"id": self.product.id, "name": self.product.name, "images": self.product.images or []}
            if self.product else None,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }

from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, to_iso_date

USER_ROLES = ("USER", "ADMIN")
USER_STATUSES = ("ACTIVE", "BLOCKED", "INACTIVE")


class User(db.Model):
    """
    Customer and administrator accounts.

    Email is globally unique and stored lower-cased. Status gates every
    authenticated request: BLOCKED and INACTIVE accounts are refused even
    with a valid token.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(100), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    phone = db.Column(db.String(15), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    date_of_birth = db.Column(db.Date, nullable=True)
    profile_image = db.Column(db.String(255), nullable=True)

    role = db.Column(db.String(16), nullable=False, default="USER")  # USER, ADMIN
    status = db.Column(db.String(16), nullable=False, default="ACTIVE", index=True)  # ACTIVE, BLOCKED, INACTIVE

    # SHA-256 of the emailed reset token, never the raw token
    reset_password_token = db.Column(db.String(255), nullable=True)
    reset_password_expire = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "dateOfBirth": to_iso_date(self.date_of_birth),
            "role": self.role,
            "status": self.status,
            "profileImage": self.profile_image,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "phone": self.phone}


class UserPreference(db.Model):
    """Per-user notification channel switches; created lazily on first read."""
    __tablename__ = "user_preferences"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_user_preferences_user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    sms_notifications = db.Column(db.Boolean, nullable=False, default=True)
    push_notifications = db.Column(db.Boolean, nullable=False, default=True)
    email_notifications = db.Column(db.Boolean, nullable=False, default=True)
    order_updates = db.Column(db.Boolean, nullable=False, default=True)
    promotions = db.Column(db.Boolean, nullable=False, default=True)
    language = db.Column(db.String(10), nullable=False, default="en")
    currency = db.Column(db.String(10), nullable=False, default="PKR")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("preferences", uselist=False, lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "smsNotifications": self.sms_notifications,
            "pushNotifications": self.push_notifications,
            "emailNotifications": self.email_notifications,
            "orderUpdates": self.order_updates,
            "promotions": self.promotions,
            "language": self.language,
            "currency": self.currency,
            "updatedAt": to_utc_z(self.updated_at),
        }

from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z

NOTIFICATION_TYPES = ("SMS", "PUSH", "EMAIL", "IN_APP")


class Notification(db.Model):
    """
    Per-user message shown in the notification centre.

    related_data carries a small JSON pointer to the entity the message is
    about (for example {"orderId": 12, "orderNumber": "RA-2026-000012"}).
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_read", "user_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="IN_APP")
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    related_data = db.Column(db.JSON, nullable=True)

    sent_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", backref=db.backref("notifications", lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "isRead": self.is_read,
            "relatedData": self.related_data,
            "sentAt": to_utc_z(self.sent_at),
            "readAt": to_utc_z(self.read_at),
        }


class ContactSubmission(db.Model):
    """Message left through the public contact form; read and deleted by admins."""
    __tablename__ = "contact_submissions"
    __table_args__ = (
        db.Index("ix_contact_submissions_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    subject = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    inquiry_type = db.Column(db.String(50), nullable=False, default="General Inquiry")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "subject": self.subject,
            "message": self.message,
            "inquiryType": self.inquiry_type,
            "createdAt": to_utc_z(self.created_at),
        }

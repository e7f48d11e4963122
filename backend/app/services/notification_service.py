# Overview: Service-layer operations for notifications; in-app messages, preferences and post-commit dispatch.

"""
Notification Service

dispatch() is the single entry point for side effects that follow a committed
business transaction (order placed, status changed, budget exceeded). Each
channel is attempted independently: a failed in-app insert does not stop the
email and a failed email never reaches the caller. The business transaction
has already committed by the time dispatch() runs.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from flask import current_app

from ..extensions import db
from ..models import Notification, User, UserPreference
from ..models.communications import NOTIFICATION_TYPES
from ..permissions import require_owner
from app.errors import NotFoundError, ValidationError
from app.time_utils import utcnow
from app.validation import parse_bool, parse_choice, parse_int
from . import email_service


_mail_executor: ThreadPoolExecutor | None = None

PREFERENCE_FIELDS = {
    "smsNotifications": "sms_notifications",
    "pushNotifications": "push_notifications",
    "emailNotifications": "email_notifications",
    "orderUpdates": "order_updates",
    "promotions": "promotions",
}


def _get_mail_executor() -> ThreadPoolExecutor:
    global _mail_executor
    if _mail_executor is None:
        _mail_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="mail")
    return _mail_executor


def _send_email_logged(to: str, subject: str, text: str) -> None:
    try:
        email_service.send_email(to=to, subject=subject, text=text)
    except Exception:
        current_app.logger.exception("Failed to send email '%s' to %s", subject, to)


def _send_email_in_background(app, to: str, subject: str, text: str) -> None:
    with app.app_context():
        _send_email_logged(to, subject, text)


def dispatch(
    *,
    user: User,
    title: str,
    message: str,
    related_data: dict | None = None,
    email: tuple[str, str] | None = None,
    notification_type: str = "IN_APP",
) -> Notification | None:
    """
    Best-effort delivery of one notification to one user.

    Writes an in-app Notification row and, when email=(subject, text) is
    given, emails the user. Returns the Notification, or None if the insert
    failed. Never raises.
    """
    notification = None
    try:
        notification = Notification(
            user_id=user.id,
            type=notification_type,
            title=title,
            message=message,
            related_data=related_data,
        )
        db.session.add(notification)
        db.session.commit()
    except Exception:
        db.session.rollback()
        notification = None
        current_app.logger.exception("Failed to store notification '%s' for user %s", title, user.id)

    if email is not None and user.email:
        subject, text = email
        if current_app.config.get("MAIL_ASYNC"):
            app = current_app._get_current_object()
            _get_mail_executor().submit(_send_email_in_background, app, user.email, subject, text)
        else:
            _send_email_logged(user.email, subject, text)

    return notification


def notify_admins(*, title: str, message: str, related_data: dict | None = None) -> int:
    """In-app notice to every active admin. Returns the number notified."""
    admins = db.session.query(User).filter(User.role == "ADMIN", User.status == "ACTIVE").all()
    sent = 0
    for admin in admins:
        if dispatch(user=admin, title=title, message=message, related_data=related_data):
            sent += 1
    return sent


# =============================================================================
# NOTIFICATION CENTRE
# =============================================================================

def list_notifications(user_id: int, *, unread_only: bool, page: int, limit: int) -> tuple[list[Notification], int, int]:
    """Return (page_of_notifications, total_matching, unread_count)."""
    query = db.session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))

    total = query.count()
    items = (
        query.order_by(Notification.sent_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    unread = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )
    return items, total, unread


def _get_own_notification(user: User, notification_id: int) -> Notification:
    notification = db.session.get(Notification, notification_id)
    if not notification:
        raise NotFoundError("Notification not found")
    require_owner(user, notification.user_id)
    return notification


def mark_read(user: User, notification_id: int) -> Notification:
    notification = _get_own_notification(user, notification_id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.session.commit()
    return notification


def mark_all_read(user_id: int) -> int:
    updated = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({"is_read": True, "read_at": utcnow()}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def delete_notification(user: User, notification_id: int) -> None:
    notification = _get_own_notification(user, notification_id)
    db.session.delete(notification)
    db.session.commit()


def get_preferences(user_id: int) -> UserPreference:
    """Return the user's preferences, creating the defaults on first read."""
    preferences = db.session.query(UserPreference).filter_by(user_id=user_id).first()
    if preferences is None:
        preferences = UserPreference(user_id=user_id)
        db.session.add(preferences)
        db.session.commit()
    return preferences


def update_preferences(user_id: int, data: dict) -> UserPreference:
    preferences = get_preferences(user_id)
    for key, column in PREFERENCE_FIELDS.items():
        if key in data and data[key] is not None:
            setattr(preferences, column, parse_bool(data[key]))
    if data.get("language"):
        preferences.language = str(data["language"]).strip()[:10]
    if data.get("currency"):
        preferences.currency = str(data["currency"]).strip().upper()[:10]
    db.session.commit()
    return preferences


# =============================================================================
# ADMIN
# =============================================================================

def create_notification(data: dict) -> Notification:
    if not data.get("userId") or not data.get("type") or not data.get("title") or not data.get("message"):
        raise ValidationError("User ID, type, title, and message are required")

    user_id = parse_int(data["userId"], "userId", minimum=1)
    if not db.session.get(User, user_id):
        raise NotFoundError("User not found")

    notification = Notification(
        user_id=user_id,
        type=parse_choice(data["type"], NOTIFICATION_TYPES, "notification type"),
        title=str(data["title"]).strip(),
        message=str(data["message"]).strip(),
        related_data=data.get("relatedData"),
    )
    db.session.add(notification)
    db.session.commit()
    return notification


def send_bulk(data: dict) -> int:
    """Create one notification per target user. Returns the count created."""
    if not data.get("type") or not data.get("title") or not data.get("message"):
        raise ValidationError("Type, title, and message are required")
    notification_type = parse_choice(data["type"], NOTIFICATION_TYPES, "notification type")

    if parse_bool(data.get("sendToAll", False)):
        target_ids = [row.id for row in db.session.query(User.id).filter(User.status == "ACTIVE").all()]
    else:
        raw_ids = data.get("userIds") or []
        if not isinstance(raw_ids, list):
            raise ValidationError("userIds must be a list")
        target_ids = sorted({parse_int(value, "userIds", minimum=1) for value in raw_ids})
        if target_ids:
            existing = {row.id for row in db.session.query(User.id).filter(User.id.in_(target_ids)).all()}
            target_ids = [user_id for user_id in target_ids if user_id in existing]

    if not target_ids:
        raise ValidationError("No users to notify")

    title = str(data["title"]).strip()
    message = str(data["message"]).strip()
    db.session.add_all(
        Notification(user_id=user_id, type=notification_type, title=title, message=message)
        for user_id in target_ids
    )
    db.session.commit()
    return len(target_ids)

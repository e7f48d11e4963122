# Overview: Service-layer operations for outgoing email; SMTP delivery and message bodies.

"""
Email Service

Thin wrapper over smtplib. When MAIL_SERVER is not configured, sends are
logged and skipped so development and test environments never need an SMTP
server. Delivery failures are raised as EmailDeliveryError; callers decide
whether that is fatal (password reset) or best-effort (order updates).
"""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from email.utils import make_msgid

from flask import current_app

from app.validation import format_rupees


class EmailDeliveryError(Exception):
    """Raised when the SMTP server rejects or cannot accept a message."""
    pass


STATUS_MESSAGES = {
    "CONFIRMED": "Your order has been confirmed and is being prepared!",
    "PROCESSING": "Your order is being processed and prepared for shipping.",
    "SHIPPED": "Great news! Your order has been shipped and is on its way!",
    "DELIVERED": "Your order has been delivered. Enjoy your resin art!",
    "CANCELLED": "Your order has been cancelled.",
}


def _deliver(message: EmailMessage, config) -> None:
    if config.get("MAIL_USE_SSL"):
        smtp = smtplib.SMTP_SSL(config["MAIL_SERVER"], config["MAIL_PORT"], timeout=config["MAIL_TIMEOUT_SECONDS"])
    else:
        smtp = smtplib.SMTP(config["MAIL_SERVER"], config["MAIL_PORT"], timeout=config["MAIL_TIMEOUT_SECONDS"])
    with smtp:
        if config.get("MAIL_USE_TLS") and not config.get("MAIL_USE_SSL"):
            smtp.starttls()
        if config.get("MAIL_USERNAME"):
            smtp.login(config["MAIL_USERNAME"], config.get("MAIL_PASSWORD") or "")
        smtp.send_message(message)


def send_email(*, to: str, subject: str, text: str, html: str | None = None) -> bool:
    """
    Send one message. Returns True when handed to the SMTP server,
    False when delivery is disabled by configuration.
    """
    config = current_app.config
    if not config.get("MAIL_SERVER"):
        current_app.logger.warning("Email delivery disabled; skipping '%s' to %s", subject, to)
        return False

    message = EmailMessage()
    message["From"] = config["MAIL_FROM"]
    message["To"] = to
    message["Subject"] = subject
    message["Message-ID"] = make_msgid(domain="resinart.com")
    message.set_content(text)
    if html:
        message.add_alternative(html, subtype="html")

    try:
        _deliver(message, config)
    except (smtplib.SMTPException, OSError) as exc:
        raise EmailDeliveryError(str(exc)) from exc

    current_app.logger.info("Email '%s' sent to %s", subject, to)
    return True


# =============================================================================
# MESSAGE BODIES
# =============================================================================

def password_reset_email(user_name: str, reset_url: str) -> tuple[str, str]:
    subject = "Reset Your Password - Resin Art Store"
    text = (
        f"Hello {user_name},\n\n"
        "We received a request to reset your password. Open the link below to choose a new one:\n\n"
        f"{reset_url}\n\n"
        "This link expires in 10 minutes. If you did not request a reset, you can ignore this email.\n\n"
        "Best regards,\nThe Resin Art Team"
    )
    return subject, text


def welcome_email(user_name: str) -> tuple[str, str]:
    subject = "Welcome to Resin Art Store!"
    text = (
        f"Hello {user_name},\n\n"
        "Thank you for joining Resin Art Store. Browse handcrafted jewelry, coasters, trays and more.\n\n"
        "Best regards,\nThe Resin Art Team"
    )
    return subject, text


def order_confirmation_email(order, user_name: str) -> tuple[str, str]:
    subject = f"Order Confirmed - #{order.order_number}"
    lines = [
        f"  {item.product_name} x {item.quantity} = {format_rupees(item.line_total_cents)}"
        for item in order.items
    ]
    text = (
        f"Hello {user_name},\n\n"
        "Thank you for your order! We have received it and will start preparing it soon.\n\n"
        f"Order Number: {order.order_number}\n\n"
        "Items:\n" + "\n".join(lines) + "\n\n"
        f"Subtotal: {format_rupees(order.subtotal_cents)}\n"
        f"Shipping: {'FREE' if order.shipping_cents == 0 else format_rupees(order.shipping_cents)}\n"
        f"Total: {format_rupees(order.total_cents)}\n\n"
        f"Shipping Address:\n{order.shipping_address}\n\n"
        "Best regards,\nThe Resin Art Team"
    )
    return subject, text


def order_status_email(order, user_name: str, new_status: str) -> tuple[str, str]:
    subject = f"Order Update - #{order.order_number}"
    message = STATUS_MESSAGES.get(new_status, f"Your order status has been updated to: {new_status}")
    tracking = ""
    if order.delivery and order.delivery.tracking_number:
        tracking = f"Tracking Number: {order.delivery.tracking_number}\n\n"
    text = (
        f"Hello {user_name},\n\n"
        f"{message}\n\n"
        f"Order Number: {order.order_number}\n"
        f"New Status: {new_status}\n\n"
        f"{tracking}"
        "Thank you for shopping with us!\n\n"
        "Best regards,\nThe Resin Art Team"
    )
    return subject, text

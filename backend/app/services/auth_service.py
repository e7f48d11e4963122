# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Signup, login, profile maintenance and the password lifecycle (change,
forgot, reset). Passwords are hashed with bcrypt; the cost factor comes from
BCRYPT_ROUNDS. Every successful credential operation returns a fresh access
token from token_service.

SECURITY NOTES:
- Email is the login identifier and is stored lower-cased
- BLOCKED and INACTIVE accounts cannot log in
- Forgot-password answers identically whether or not the email exists
- Only the SHA-256 digest of a reset token is persisted
"""

from __future__ import annotations

from datetime import timedelta

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import (
    Cart,
    CartItem,
    Delivery,
    Notification,
    Order,
    OrderItem,
    OrderTracking,
    Payment,
    Review,
    User,
    UserPreference,
)
from app.errors import ApiError, AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from app.time_utils import utcnow
from app.validation import (
    ModelValidationPolicy,
    validate_email,
    validate_password,
    validate_payload,
)
from . import email_service, token_service


FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."

PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "phone": "phone",
        "address": "address",
        "dateOfBirth": "date_of_birth",
        "profileImage": "profile_image",
    },
)


def hash_password(password: str) -> str:
    """Hash password using bcrypt with the configured cost factor."""
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def ensure_can_sign_in(user: User) -> None:
    if user.status == "BLOCKED":
        raise AuthorizationError("Your account has been blocked. Please contact support.", code="ACCOUNT_BLOCKED")
    if user.status == "INACTIVE":
        raise AuthorizationError("Your account is inactive. Please contact support.", code="ACCOUNT_INACTIVE")


def create_user(*, name: str, email: str, password: str, role: str = "USER", **profile) -> User:
    """
    Create a user with a bcrypt hash. Raises ValidationError on bad input or
    a duplicate email. Does not commit.
    """
    if not name or not email or not password:
        raise ValidationError("Please provide name, email, and password")
    email = validate_email(email)
    validate_password(password)

    if db.session.query(User).filter_by(email=email).first():
        raise ValidationError("A user with this email already exists")

    user = User(
        name=str(name).strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        status="ACTIVE",
        **profile,
    )
    db.session.add(user)
    return user


def signup(data: dict) -> tuple[User, str]:
    profile = validate_payload(
        model=User,
        payload={k: data.get(k) for k in ("phone", "address", "dateOfBirth") if data.get(k) not in (None, "")},
        policy=PROFILE_POLICY,
        partial=True,
    )
    user = create_user(
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        **profile,
    )
    db.session.commit()

    try:
        subject, text = email_service.welcome_email(user.name)
        email_service.send_email(to=user.email, subject=subject, text=text)
    except Exception:
        current_app.logger.exception("Failed to send welcome email to %s", user.email)

    return user, token_service.generate_token(user.id)


def login(email: str | None, password: str | None) -> tuple[User, str]:
    if not email or not password:
        raise ValidationError("Please provide email and password")

    user = db.session.query(User).filter_by(email=str(email).strip().lower()).first()
    if not user:
        raise AuthenticationError("Invalid email or password", code="INVALID_CREDENTIALS")

    ensure_can_sign_in(user)

    if not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid email or password", code="INVALID_CREDENTIALS")

    return user, token_service.generate_token(user.id)


def get_profile(user: User) -> dict:
    data = user.to_dict()
    data["counts"] = {
        "orders": db.session.query(Order).filter_by(user_id=user.id).count(),
        "reviews": db.session.query(Review).filter_by(user_id=user.id).count(),
    }
    return data


def update_profile(user: User, data: dict) -> User:
    patch = validate_payload(model=User, payload=data, policy=PROFILE_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")
    for key, value in patch.items():
        setattr(user, key, value)
    db.session.commit()
    return user


def set_profile_image(user: User, image_url: str) -> User:
    user.profile_image = image_url
    db.session.commit()
    return user


def change_password(user: User, data: dict) -> str:
    current = data.get("currentPassword")
    new = data.get("newPassword")
    confirm = data.get("confirmPassword")

    if not current or not new or not confirm:
        raise ValidationError("Please provide current password, new password, and confirmation")
    if new != confirm:
        raise ValidationError("New passwords do not match")
    validate_password(new, label="New password")

    if not verify_password(current, user.password_hash):
        raise AuthenticationError("Current password is incorrect", code="INVALID_CREDENTIALS")
    if verify_password(new, user.password_hash):
        raise ValidationError("New password must be different from current password")

    user.password_hash = hash_password(new)
    db.session.commit()
    return token_service.generate_token(user.id)


def forgot_password(email: str | None) -> None:
    """
    Store a hashed reset token and email the raw token as a link.

    Silent for unknown emails. If the email cannot be sent the token is
    cleared again and a 500 is raised so the user knows to retry.
    """
    if not email:
        raise ValidationError("Please provide your email address")

    user = db.session.query(User).filter_by(email=str(email).strip().lower()).first()
    if not user:
        return

    raw_token, hashed_token = token_service.generate_reset_token()
    user.reset_password_token = hashed_token
    user.reset_password_expire = utcnow() + timedelta(minutes=current_app.config["RESET_TOKEN_TTL_MINUTES"])
    db.session.commit()

    reset_url = f"{current_app.config['FRONTEND_URL']}/reset-password?token={raw_token}"
    try:
        subject, text = email_service.password_reset_email(user.name, reset_url)
        email_service.send_email(to=user.email, subject=subject, text=text)
    except Exception:
        current_app.logger.exception("Failed to send password reset email to %s", user.email)
        user.reset_password_token = None
        user.reset_password_expire = None
        db.session.commit()
        raise ApiError(
            "Failed to send reset email. Please try again later.",
            status_code=500,
            code="EMAIL_DELIVERY_FAILED",
        )


def reset_password(token: str | None, data: dict) -> str:
    if not token:
        raise ValidationError("Reset token is required")
    password = data.get("password")
    confirm = data.get("confirmPassword")
    if not password or not confirm:
        raise ValidationError("Please provide new password and confirmation")
    if password != confirm:
        raise ValidationError("Passwords do not match")
    validate_password(password)

    user = (
        db.session.query(User)
        .filter(
            User.reset_password_token == token_service.hash_reset_token(token),
            User.reset_password_expire > utcnow(),
        )
        .first()
    )
    if not user:
        raise ValidationError("Invalid or expired reset token. Please request a new one.")

    user.password_hash = hash_password(password)
    user.reset_password_token = None
    user.reset_password_expire = None
    db.session.commit()
    return token_service.generate_token(user.id)


def delete_user_data(user_id: int) -> None:
    """Remove a user and everything they own. Does not commit."""
    order_ids = [row.id for row in db.session.query(Order.id).filter(Order.user_id == user_id).all()]
    if order_ids:
        for model in (OrderTracking, OrderItem, Payment, Delivery):
            db.session.query(model).filter(model.order_id.in_(order_ids)).delete(synchronize_session=False)
        db.session.query(Order).filter(Order.id.in_(order_ids)).delete(synchronize_session=False)

    cart_ids = [row.id for row in db.session.query(Cart.id).filter(Cart.user_id == user_id).all()]
    if cart_ids:
        db.session.query(CartItem).filter(CartItem.cart_id.in_(cart_ids)).delete(synchronize_session=False)
        db.session.query(Cart).filter(Cart.id.in_(cart_ids)).delete(synchronize_session=False)

    for model in (Review, Notification, UserPreference):
        db.session.query(model).filter(model.user_id == user_id).delete(synchronize_session=False)

    db.session.query(User).filter(User.id == user_id).delete(synchronize_session=False)


def delete_own_account(user: User) -> None:
    if not db.session.get(User, user.id):
        raise NotFoundError("User not found")
    delete_user_data(user.id)
    db.session.commit()
    db.session.expunge_all()


def get_user_for_token(token: str) -> User:
    """Resolve a bearer token to an active user or raise."""
    payload = token_service.decode_token(token)
    user = db.session.get(User, payload["userId"])
    if not user:
        raise AuthenticationError("User no longer exists.", code="USER_NOT_FOUND")
    ensure_can_sign_in(user)
    return user

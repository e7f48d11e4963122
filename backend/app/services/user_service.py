# Overview: Service-layer operations for admin user management; encapsulates business logic and database work.

"""
User Management Service (admin)

RULES:
- Admin accounts cannot be blocked or deleted through this service
- An admin cannot block, delete or change the role of their own account
- Deleting a user with order history deactivates instead (status INACTIVE)
"""

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Order, Review, User
from ..models.auth import USER_ROLES
from ..permissions import ROLE_ADMIN
from app.errors import NotFoundError, ValidationError
from app.time_utils import month_bounds, utcnow
from app.validation import validate_password
from .auth_service import delete_user_data, hash_password


USER_SORT_FIELDS = {
    "createdAt": User.created_at,
    "updatedAt": User.updated_at,
    "name": User.name,
    "email": User.email,
}


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def user_stats() -> dict:
    now = utcnow()
    month_start, _ = month_bounds(now.year, now.month)
    total = db.session.query(User).count()
    admins = db.session.query(User).filter(User.role == ROLE_ADMIN).count()
    return {
        "totalUsers": total,
        "activeUsers": db.session.query(User).filter(User.status == "ACTIVE").count(),
        "blockedUsers": db.session.query(User).filter(User.status == "BLOCKED").count(),
        "adminUsers": admins,
        "regularUsers": total - admins,
        "newUsersThisMonth": db.session.query(User).filter(User.created_at >= month_start).count(),
    }


def user_with_counts(user: User) -> dict:
    data = user.to_dict()
    data["orderCount"] = db.session.query(Order).filter(Order.user_id == user.id).count()
    data["reviewCount"] = db.session.query(Review).filter(Review.user_id == user.id).count()
    return data


def list_users(args, *, page: int, limit: int):
    """Returns (users, total)."""
    query = db.session.query(User)
    search = (args.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if args.get("status"):
        query = query.filter(User.status == args["status"].strip().upper())
    if args.get("role"):
        query = query.filter(User.role == args["role"].strip().upper())

    sort = args.get("sort") or "-createdAt"
    column = USER_SORT_FIELDS.get(sort.lstrip("-"), User.created_at)
    query = query.order_by(column.desc() if sort.startswith("-") else column.asc(), User.id.desc())

    total = query.count()
    return query.offset((page - 1) * limit).limit(limit).all(), total


def blocked_users(*, page: int, limit: int):
    query = db.session.query(User).filter(User.status == "BLOCKED")
    total = query.count()
    users = (
        query.order_by(User.updated_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return users, total


def user_detail(user_id: int) -> dict:
    """Profile plus the ten most recent orders and reviews."""
    user = _get_user(user_id)
    data = user_with_counts(user)
    orders = (
        db.session.query(Order)
        .filter(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(10)
        .all()
    )
    reviews = (
        db.session.query(Review)
        .filter(Review.user_id == user.id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(10)
        .all()
    )
    data["orders"] = [
        {
            "id": o.id,
            "orderNumber": o.order_number,
            "status": o.status,
            "totalCents": o.total_cents,
            "createdAt": o.to_dict()["createdAt"],
        }
        for o in orders
    ]
    data["reviews"] = [
        {
            "id": r.id,
            "rating": r.rating,
            "comment": r.comment,
            "product": {"id": r.product.id, "name": r.product.name} if r.product else None,
        }
        for r in reviews
    ]
    return data


def block_user(actor: User, user_id: int) -> User:
    user = _get_user(user_id)
    if user.role == ROLE_ADMIN:
        raise ValidationError("Cannot block admin users")
    if user.id == actor.id:
        raise ValidationError("Cannot block yourself")
    if user.status == "BLOCKED":
        raise ValidationError("User is already blocked")
    user.status = "BLOCKED"
    db.session.commit()
    return user


def unblock_user(user_id: int) -> User:
    user = _get_user(user_id)
    if user.status != "BLOCKED":
        raise ValidationError("User is not blocked")
    user.status = "ACTIVE"
    db.session.commit()
    return user


def update_role(actor: User, user_id: int, role) -> User:
    normalized = str(role or "").strip().upper()
    if normalized not in USER_ROLES:
        raise ValidationError("Invalid role. Must be USER or ADMIN")
    if user_id == actor.id:
        raise ValidationError("Cannot change your own role")
    user = _get_user(user_id)
    user.role = normalized
    db.session.commit()
    return user


def reset_user_password(user_id: int, new_password) -> User:
    password = validate_password(new_password)
    user = _get_user(user_id)
    user.password_hash = hash_password(password)
    user.reset_password_token = None
    user.reset_password_expire = None
    db.session.commit()
    return user


def delete_user(actor: User, user_id: int) -> bool:
    """Returns True when the row was removed, False when it was deactivated instead."""
    if user_id == actor.id:
        raise ValidationError("Cannot delete your own account")
    user = _get_user(user_id)
    if user.role == ROLE_ADMIN:
        raise ValidationError("Cannot delete admin users")

    if db.session.query(Order).filter(Order.user_id == user.id).count():
        user.status = "INACTIVE"
        db.session.commit()
        return False

    delete_user_data(user.id)
    db.session.commit()
    db.session.expire_all()
    return True

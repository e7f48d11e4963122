"""
Ownership and role rules shared by every resource.

Customers act on their own records only; administrators may act on any
record. Route handlers call these helpers after loading the row so the same
rule (and the same 403 message) applies to orders, carts, payments, reviews
and notifications.
"""

from __future__ import annotations

from app.errors import AuthorizationError

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"


def is_owner_or_admin(user, owner_id: int | None) -> bool:
    if user is None:
        return False
    return user.role == ROLE_ADMIN or (owner_id is not None and user.id == owner_id)


def require_owner_or_admin(user, owner_id: int | None, message: str = "Not authorized") -> None:
    """Raise AuthorizationError unless user owns the record or is an admin."""
    if not is_owner_or_admin(user, owner_id):
        raise AuthorizationError(message)


def require_owner(user, owner_id: int | None, message: str = "Not authorized") -> None:
    """Owner-only actions (paying, editing a cart) that admins may not perform on a user's behalf."""
    if user is None or user.id != owner_id:
        raise AuthorizationError(message)

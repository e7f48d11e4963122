# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import ApiError
from .services import auth_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def _deny(message: str, status: int, code: str | None = None):
    return jsonify({"success": False, "message": message, "code": code}), status


def require_auth(f):
    """
    Require a valid bearer token for an existing, active user.

    Sets g.current_user to the authenticated User.

    SECURITY: Returns 401 if the header is missing, the token is invalid or
    expired, or the user no longer exists. Returns 403 if the account is
    BLOCKED or INACTIVE.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return _deny("Not authorized. No token provided.", 401, "UNAUTHENTICATED")

        try:
            user = auth_service.get_user_for_token(token)
        except ApiError as e:
            return _deny(e.message, e.status_code, e.code)

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """Attach g.current_user when a usable token is present; never rejects."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.current_user = None
        token = _bearer_token()
        if token:
            try:
                g.current_user = auth_service.get_user_for_token(token)
            except ApiError:
                g.current_user = None
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the authenticated user to hold one of roles.

    Must be stacked below @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return _deny("Not authorized. No token provided.", 401, "UNAUTHENTICATED")

            if user.role not in roles:
                return _deny(f"User role '{user.role}' is not authorized to access this route.", 403, "FORBIDDEN")

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin(f):
    """Shorthand for @require_auth + @require_role("ADMIN")."""
    return require_auth(require_role("ADMIN")(f))

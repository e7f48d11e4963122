# Overview: Flask API routes for admin user management; parses input and returns JSON responses.

# backend/app/routes/users.py
"""
User management API routes (admin only)

SECURITY:
- Every route requires an ADMIN bearer token
- Admins cannot block, delete or change the role of themselves
"""

from flask import Blueprint, request, jsonify, g

from ..services import user_service
from ..validation import parse_pagination, pagination_meta
from ..decorators import require_admin


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/stats")
@require_admin
def user_stats_route():
    return jsonify({"success": True, "data": user_service.user_stats()})


@users_bp.get("")
@require_admin
def list_users_route():
    """
    Query params: search, status, role, sort (e.g. -createdAt, name), page, limit
    """
    page, limit = parse_pagination(request.args)
    users, total = user_service.list_users(request.args, page=page, limit=limit)
    return jsonify({
        "success": True,
        "count": len(users),
        "pagination": pagination_meta(page, limit, total),
        "data": [user_service.user_with_counts(u) for u in users],
    })


@users_bp.get("/blocked")
@require_admin
def blocked_users_route():
    page, limit = parse_pagination(request.args)
    users, total = user_service.blocked_users(page=page, limit=limit)
    return jsonify({
        "success": True,
        "count": len(users),
        "pagination": pagination_meta(page, limit, total),
        "data": [u.to_dict() for u in users],
    })


@users_bp.get("/<int:user_id>")
@require_admin
def get_user_route(user_id: int):
    return jsonify({"success": True, "data": user_service.user_detail(user_id)})


@users_bp.put("/<int:user_id>/block")
@require_admin
def block_user_route(user_id: int):
    user = user_service.block_user(g.current_user, user_id)
    return jsonify({
        "success": True,
        "message": f'User "{user.name}" has been blocked successfully.',
        "data": user.to_summary() | {"status": user.status},
    })


@users_bp.put("/<int:user_id>/unblock")
@require_admin
def unblock_user_route(user_id: int):
    user = user_service.unblock_user(user_id)
    return jsonify({
        "success": True,
        "message": f'User "{user.name}" has been unblocked and regained full access.',
        "data": user.to_summary() | {"status": user.status},
    })


@users_bp.put("/<int:user_id>/role")
@require_admin
def update_role_route(user_id: int):
    data = request.get_json(silent=True) or {}
    user = user_service.update_role(g.current_user, user_id, data.get("role"))
    return jsonify({
        "success": True,
        "message": f"User role updated to {user.role}",
        "data": user.to_summary() | {"role": user.role},
    })


@users_bp.put("/<int:user_id>/reset-password")
@require_admin
def reset_user_password_route(user_id: int):
    data = request.get_json(silent=True) or {}
    user = user_service.reset_user_password(user_id, data.get("newPassword"))
    return jsonify({
        "success": True,
        "message": f'Password for user "{user.name}" has been reset successfully',
        "data": {"id": user.id, "name": user.name, "email": user.email},
    })


@users_bp.delete("/<int:user_id>")
@require_admin
def delete_user_route(user_id: int):
    removed = user_service.delete_user(g.current_user, user_id)
    message = "User deleted successfully" if removed else "User deactivated (has order history)"
    return jsonify({"success": True, "message": message})

# Overview: Flask API routes for notification operations; parses input and returns JSON responses.

# backend/app/routes/notifications.py
"""
Notification centre routes.

Users see and manage only their own notifications. Admins can send a
notification to one user or in bulk (explicit ids or every active user).
"""

from flask import Blueprint, request, jsonify, g

from ..services import notification_service
from ..validation import parse_bool, parse_pagination, pagination_meta
from ..decorators import require_auth, require_admin


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    """Query params: unreadOnly, page, limit (default 20)"""
    page, limit = parse_pagination(request.args, default_limit=20)
    items, total, unread = notification_service.list_notifications(
        g.current_user.id,
        unread_only=parse_bool(request.args.get("unreadOnly", False)),
        page=page,
        limit=limit,
    )
    return jsonify({
        "success": True,
        "count": len(items),
        "unreadCount": unread,
        "pagination": pagination_meta(page, limit, total),
        "data": [n.to_dict() for n in items],
    })


@notifications_bp.put("/read-all")
@require_auth
def mark_all_read_route():
    updated = notification_service.mark_all_read(g.current_user.id)
    return jsonify({"success": True, "message": "All notifications marked as read", "data": {"updated": updated}})


@notifications_bp.put("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    notification = notification_service.mark_read(g.current_user, notification_id)
    return jsonify({"success": True, "data": notification.to_dict()})


@notifications_bp.delete("/<int:notification_id>")
@require_auth
def delete_notification_route(notification_id: int):
    notification_service.delete_notification(g.current_user, notification_id)
    return jsonify({"success": True, "message": "Notification deleted"})


@notifications_bp.get("/preferences")
@require_auth
def get_preferences_route():
    preferences = notification_service.get_preferences(g.current_user.id)
    return jsonify({"success": True, "data": preferences.to_dict()})


@notifications_bp.put("/preferences")
@require_auth
def update_preferences_route():
    data = request.get_json(silent=True) or {}
    preferences = notification_service.update_preferences(g.current_user.id, data)
    return jsonify({"success": True, "message": "Preferences updated successfully", "data": preferences.to_dict()})


# =============================================================================
# ADMIN
# =============================================================================

@notifications_bp.post("")
@require_admin
def create_notification_route():
    data = request.get_json(silent=True) or {}
    notification = notification_service.create_notification(data)
    return jsonify({"success": True, "message": "Notification sent successfully", "data": notification.to_dict()}), 201


@notifications_bp.post("/bulk")
@require_admin
def bulk_notifications_route():
    """
    Request body:
    {
        "type": "IN_APP",
        "title": "Eid sale",
        "message": "20% off coasters this week",
        "userIds": [3, 4, 9]      (or "sendToAll": true)
    }
    """
    data = request.get_json(silent=True) or {}
    sent = notification_service.send_bulk(data)
    return jsonify({"success": True, "message": f"Sent {sent} notifications", "data": {"count": sent}}), 201

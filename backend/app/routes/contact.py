# Overview: Flask API routes for the contact form; public submission plus admin review of submissions.

# backend/app/routes/contact.py
"""
Contact form routes.

Anyone can submit the form. Only admins can list, read or delete what was
submitted.
"""

from flask import Blueprint, request, jsonify

from ..services import contact_service
from ..validation import parse_pagination, pagination_meta
from ..decorators import require_admin


contact_bp = Blueprint("contact", __name__, url_prefix="/api/contact")


@contact_bp.post("/submit")
def submit_contact_route():
    """
    Request body:
    {
        "name": "Sana Malik",
        "email": "sana@example.com",
        "phone": "+92 300 1234567",          (optional, at most 13 digits)
        "subject": "Custom wall clock",
        "message": "Can you make a 24 inch ocean clock?",
        "inquiryType": "Custom Order"        (optional, default "General Inquiry")
    }
    """
    data = request.get_json(silent=True) or {}
    submission = contact_service.submit_contact(data)
    return jsonify({
        "success": True,
        "message": "Thank you for contacting us! We will get back to you soon.",
        "data": submission.to_dict(),
    }), 201


@contact_bp.get("")
@require_admin
def list_contacts_route():
    """Query params: page, limit (default 10), sortBy (default createdAt), sortOrder (asc|desc)"""
    page, limit = parse_pagination(request.args, default_limit=10)
    items, total = contact_service.list_contacts(
        page=page,
        limit=limit,
        sort_by=request.args.get("sortBy"),
        sort_order=request.args.get("sortOrder"),
    )
    return jsonify({
        "success": True,
        "count": len(items),
        "pagination": pagination_meta(page, limit, total),
        "data": [c.to_dict() for c in items],
    })


@contact_bp.get("/<int:contact_id>")
@require_admin
def get_contact_route(contact_id: int):
    submission = contact_service.get_contact(contact_id)
    return jsonify({"success": True, "data": submission.to_dict()})


@contact_bp.delete("/<int:contact_id>")
@require_admin
def delete_contact_route(contact_id: int):
    payload = contact_service.delete_contact(contact_id)
    return jsonify({"success": True, "message": "Contact submission deleted successfully", "data": payload})

# Overview: Service-layer operations for the public contact form; validates submissions and serves them to admins.

from __future__ import annotations

import re

from ..extensions import db
from ..models import ContactSubmission
from app.errors import NotFoundError, ValidationError
from app.validation import require_fields, validate_email


DEFAULT_INQUIRY_TYPE = "General Inquiry"
MAX_PHONE_DIGITS = 13

CONTACT_SORT_FIELDS = {
    "createdAt": ContactSubmission.created_at,
    "name": ContactSubmission.name,
    "email": ContactSubmission.email,
    "subject": ContactSubmission.subject,
    "inquiryType": ContactSubmission.inquiry_type,
}


def _clean_phone(value) -> str | None:
    """Formatting characters are allowed; only digits count toward the limit."""
    phone = str(value or "").strip()
    if not phone:
        return None
    if len(re.sub(r"\D", "", phone)) > MAX_PHONE_DIGITS:
        raise ValidationError(f"Phone number can contain a maximum of {MAX_PHONE_DIGITS} digits")
    if len(phone) > ContactSubmission.phone.type.length:
        raise ValidationError("Phone number is too long")
    return phone


def submit_contact(data: dict) -> ContactSubmission:
    require_fields(
        data, "name", "email", "subject", "message",
        message="Please provide all required fields: name, email, subject, message",
    )
    submission = ContactSubmission(
        name=str(data["name"]).strip(),
        email=validate_email(data["email"]),
        phone=_clean_phone(data.get("phone")),
        subject=str(data["subject"]).strip(),
        message=str(data["message"]).strip(),
        inquiry_type=str(data.get("inquiryType") or "").strip() or DEFAULT_INQUIRY_TYPE,
    )
    db.session.add(submission)
    db.session.commit()
    return submission


def list_contacts(*, page: int, limit: int, sort_by: str | None = None, sort_order: str | None = None):
    """Returns (submissions, total). Unknown sort fields fall back to createdAt."""
    query = db.session.query(ContactSubmission)
    total = query.count()

    column = CONTACT_SORT_FIELDS.get(sort_by or "createdAt", ContactSubmission.created_at)
    if (sort_order or "desc").lower() == "asc":
        ordering = (column.asc(), ContactSubmission.id.asc())
    else:
        ordering = (column.desc(), ContactSubmission.id.desc())
    submissions = query.order_by(*ordering).offset((page - 1) * limit).limit(limit).all()
    return submissions, total


def get_contact(contact_id: int) -> ContactSubmission:
    submission = db.session.get(ContactSubmission, contact_id)
    if submission is None:
        raise NotFoundError("Contact submission not found")
    return submission


def delete_contact(contact_id: int) -> dict:
    """Delete a submission and return its last serialized state."""
    submission = get_contact(contact_id)
    payload = submission.to_dict()
    db.session.delete(submission)
    db.session.commit()
    return payload

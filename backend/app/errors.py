# Overview: API error taxonomy and the centralized translator that turns any raised error into a JSON envelope.

from __future__ import annotations

import re
import traceback

from flask import Flask, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from .extensions import db


class ApiError(Exception):
    """Base class for errors that map onto a specific HTTP status."""
    status_code = 500
    code: str | None = None

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details or {}


class ValidationError(ApiError, ValueError):
    """400-level input problem."""
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(ApiError):
    status_code = 401
    code = "UNAUTHENTICATED"


class AuthorizationError(ApiError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"


class StateConflictError(ApiError):
    """Entity is in the wrong state for the requested transition."""
    status_code = 400
    code = "STATE_CONFLICT"


_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: ([\w.]+)")
_MYSQL_DUPLICATE = re.compile(r"for key '([\w.]+)'")


def _unique_field(raw: str) -> str:
    match = _SQLITE_UNIQUE.search(raw)
    if match:
        return match.group(1).split(".")[-1]
    match = _MYSQL_DUPLICATE.search(raw)
    if match:
        key = match.group(1).split(".")[-1]
        return key.rsplit("_", 1)[-1] if key.startswith("uq_") else key
    return "field"


def describe_integrity_error(exc: IntegrityError) -> tuple[str, str]:
    """Return (message, code) for a database integrity violation."""
    raw = str(getattr(exc, "orig", exc))
    lowered = raw.lower()
    if "unique" in lowered or "duplicate" in lowered:
        return f"A record with this {_unique_field(raw)} already exists.", "DUPLICATE_RECORD"
    if "foreign key" in lowered:
        return "Invalid reference. The referenced record does not exist.", "INVALID_REFERENCE"
    if "not null" in lowered:
        return "A required value is missing.", "MISSING_VALUE"
    return "The operation would violate a required relation.", "INTEGRITY_ERROR"


def _is_production() -> bool:
    return current_app.config.get("APP_ENV") == "production"


def error_response(message: str, status: int, code: str | None = None, exc: BaseException | None = None, **extra):
    payload = {"success": False, "message": message, "code": code}
    payload.update(extra)
    if exc is not None and not _is_production():
        payload["name"] = type(exc).__name__
        payload["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return jsonify(payload), status


def register_error_handlers(app: Flask) -> None:
    """Route every error raised by a handler through one translator."""

    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        db.session.rollback()
        extra = {"details": exc.details} if exc.details else {}
        if exc.status_code >= 500:
            current_app.logger.exception("API error on %s %s", request.method, request.path)
            return error_response(exc.message, exc.status_code, exc.code, exc, **extra)
        return error_response(exc.message, exc.status_code, exc.code, **extra)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(exc: IntegrityError):
        db.session.rollback()
        message, code = describe_integrity_error(exc)
        current_app.logger.warning("Integrity error on %s %s: %s", request.method, request.path, exc.orig)
        return error_response(message, 400, code, exc)

    @app.errorhandler(OperationalError)
    def handle_operational_error(exc: OperationalError):
        db.session.rollback()
        current_app.logger.exception("Database unavailable on %s %s", request.method, request.path)
        return error_response("Database connection problem. Please try again.", 503, "DATABASE_UNAVAILABLE", exc)

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        db.session.rollback()
        status = exc.code or 500
        if status == 404:
            message = f"Not Found - {request.method} {request.path}"
        elif status == 413:
            message = "File too large. Maximum size is 5MB."
        elif status == 400 and "JSON" in (exc.description or ""):
            message = "Invalid JSON in request body."
        else:
            message = exc.description or exc.name
        return error_response(message, status, exc.name.upper().replace(" ", "_"))

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        message = "An internal error occurred." if _is_production() else (str(exc) or "Internal Server Error")
        return error_response(message, 500, "INTERNAL_ERROR", exc)

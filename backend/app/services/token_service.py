# Overview: Service-layer operations for tokens; JWT access tokens and hashed password-reset tokens.

"""
Token Service

Access tokens are stateless JWTs signed with HS256. The payload carries only
the user id and a token type; the user row is re-read on every request so a
blocked or deleted account loses access immediately.

Password reset tokens are random hex strings. Only their SHA-256 digest is
stored on the user row; the raw value travels in the emailed link.
"""

from __future__ import annotations

import hashlib
import secrets

import jwt
from flask import current_app

from app.errors import AuthenticationError
from app.time_utils import parse_duration, utcnow


def generate_token(user_id: int) -> str:
    """Issue an access token for user_id."""
    if not user_id:
        raise ValueError("User ID is required to generate token")

    config = current_app.config
    now = utcnow()
    payload = {
        "userId": user_id,
        "type": "access",
        "iat": now,
        "exp": now + parse_duration(config["JWT_EXPIRE"]),
        "iss": config["JWT_ISSUER"],
        "aud": config["JWT_AUDIENCE"],
    }
    return jwt.encode(payload, config["JWT_SECRET"], algorithm=config["JWT_ALGORITHM"])


def decode_token(token: str) -> dict:
    """
    Verify signature, expiry, issuer and audience; return the payload.

    Raises AuthenticationError with a client-facing message on any failure.
    """
    config = current_app.config
    try:
        payload = jwt.decode(
            token,
            config["JWT_SECRET"],
            algorithms=[config["JWT_ALGORITHM"]],
            issuer=config["JWT_ISSUER"],
            audience=config["JWT_AUDIENCE"],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired. Please log in again.", code="TOKEN_EXPIRED")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token. Please log in again.", code="INVALID_TOKEN")

    if payload.get("type") != "access" or not payload.get("userId"):
        raise AuthenticationError("Invalid token. Please log in again.", code="INVALID_TOKEN")
    return payload


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_reset_token() -> tuple[str, str]:
    """Return (raw_token, sha256_hex). Email the raw token, store the digest."""
    raw = secrets.token_hex(32)
    return raw, hash_reset_token(raw)

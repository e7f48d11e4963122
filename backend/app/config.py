# backend/app/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # "development" | "production" | "testing"; production hides stack traces
    APP_ENV = os.environ.get("APP_ENV", "development")

    # SQLite DB stored in backend/instance/resin_art.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location (e.g. mysql+pymysql://...)
        "sqlite:///resin_art.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT access tokens
    JWT_SECRET = os.environ.get("JWT_SECRET", SECRET_KEY)
    JWT_EXPIRE = os.environ.get("JWT_EXPIRE", "30d")
    JWT_ALGORITHM = "HS256"
    JWT_ISSUER = "resin-art-api"
    JWT_AUDIENCE = "resin-art-client"

    # bcrypt cost factor; tests lower it
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Password reset links
    RESET_TOKEN_TTL_MINUTES = 10
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")

    # Pricing (all money in paisa)
    FREE_SHIPPING_THRESHOLD_CENTS = 500_000
    FLAT_SHIPPING_FEE_CENTS = 20_000
    ORDER_NUMBER_PREFIX = "RA"

    LOW_STOCK_THRESHOLD = 10
    CRITICAL_STOCK_THRESHOLD = 5

    # Outgoing mail; leaving MAIL_SERVER unset disables delivery
    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "587"))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", True)
    MAIL_USE_SSL = _env_bool("MAIL_USE_SSL", False)
    MAIL_TIMEOUT_SECONDS = 10
    MAIL_FROM = os.environ.get("MAIL_FROM", "Resin Art Store <noreply@resinart.com>")
    MAIL_ASYNC = _env_bool("MAIL_ASYNC", False)

    # Uploads (product images, profile pictures)
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", "uploads")
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024
    ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}

    CORS_ORIGINS = set(
        filter(
            None,
            os.environ.get(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
            ).split(","),
        )
    )

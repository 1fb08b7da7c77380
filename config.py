"""
Application configuration.
This module defines the configuration settings for the Flask application, including database connection, secret key,
upload storage and logging. It uses environment variables for sensitive information and defaults for development.
In production, make sure to set the appropriate environment variables and secure the secret key.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change this in production
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")

    # Database: SQLite for development (simple file in project folder)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'canvassing.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CSRF protection (clients send the token as X-CSRFToken)
    WTF_CSRF_ENABLED = os.environ.get("WTF_CSRF_ENABLED", "1") != "0"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Object storage: one sub-directory per bucket
    UPLOAD_ROOT = os.environ.get("UPLOAD_ROOT", str(BASE_DIR / "uploads"))
    CANVASS_BUCKET = "canvass-attachments"
    AVATAR_BUCKET = "avatars"
    ALLOWED_UPLOAD_EXTENSIONS = {"pdf", "png", "jpg", "jpeg", "webp", "xls", "xlsx", "csv", "doc", "docx"}
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", 25 * 1024 * 1024))

    # Canvass form: canvass sheet + up to MAX_QUOTATIONS quotation files
    MAX_QUOTATIONS = 4

    # App name (used in notifications and API root)
    APP_NAME = "CanvassingApp"


class TestingConfig(Config):
    """Configuration used by the test-suite."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    LOG_LEVEL = "WARNING"

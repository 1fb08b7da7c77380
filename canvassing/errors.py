"""
canvassing/errors.py

Domain exceptions and JSON error handlers.

Every error response has the same shape:

    {"error": true, "message": "..."}

Validation errors add a "fields" mapping (field name -> message).
"""

from __future__ import annotations

from typing import Dict, Optional

from flask import Flask, jsonify
from loguru import logger
from werkzeug.exceptions import HTTPException

from .extensions import db


class CanvassingError(Exception):
    """Base class for errors raised by server actions."""

    status_code = 400

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": True, "message": self.message}


class ValidationError(CanvassingError):
    """Invalid input payload."""

    status_code = 400

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.fields:
            data["fields"] = self.fields
        return data


class PermissionDenied(CanvassingError):
    """Caller is not allowed to act on this resource."""

    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action."):
        super().__init__(message)


class WorkflowError(CanvassingError):
    """Action not allowed in the ticket's current state."""

    status_code = 409


class StorageError(CanvassingError):
    """Object storage failure (upload/remove)."""

    status_code = 500


def json_error(message: str, status_code: int):
    """Build a JSON error response tuple."""
    return jsonify({"error": True, "message": message}), status_code


def register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers on the app."""

    @app.errorhandler(CanvassingError)
    def _handle_domain_error(exc: CanvassingError):
        db.session.rollback()
        if exc.status_code >= 500:
            logger.error("Server action failed: {message}", message=exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):
        return json_error(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        db.session.rollback()
        logger.exception("Unhandled error: {error}", error=exc)
        return json_error("An unexpected error occurred.", 500)

"""Dashboard blueprint package export."""

from __future__ import annotations

from .routes import dashboard_bp  # noqa: F401

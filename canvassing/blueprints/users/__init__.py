"""Users blueprint package export."""

from __future__ import annotations

from .routes import users_bp  # noqa: F401

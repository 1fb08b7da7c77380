"""Comments blueprint package export."""

from __future__ import annotations

from .routes import comments_bp  # noqa: F401

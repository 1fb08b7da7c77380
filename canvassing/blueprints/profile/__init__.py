"""Profile blueprint package export."""

from __future__ import annotations

from .routes import profile_bp  # noqa: F401

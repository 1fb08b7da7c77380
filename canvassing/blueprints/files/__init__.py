"""Files blueprint package export."""

from __future__ import annotations

from .routes import files_bp  # noqa: F401

"""Canvass blueprint package export."""

from __future__ import annotations

from .routes import canvass_bp  # noqa: F401

"""
Tickets blueprint package export.

IMPORTANT:
- Must expose tickets_bp for app factory registration.
- Keep import minimal to avoid side effects.
"""

from __future__ import annotations

from .routes import tickets_bp  # noqa: F401

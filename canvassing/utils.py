"""
Utility functions shared across the app. This includes:
- Request payload parsing helpers (JSON or form data).
- Display helpers: convert_file_size, get_name_initials, file_name_from_url.
- status_color / role_color: badge colors for ticket statuses and user roles.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from urllib.parse import urlparse

from flask import request

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# ---------------------------------------------------------------------
# Request parsing
# ---------------------------------------------------------------------
def request_data() -> dict:
    """Return the request payload as a dict (JSON body or form fields)."""
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return payload
    return request.form.to_dict(flat=True)


def request_list(key: str) -> list:
    """Return a list value from JSON body or repeated form fields."""
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        value = payload.get(key) or []
        return value if isinstance(value, list) else [value]
    return request.form.getlist(key)


def clean_str(value) -> str | None:
    """Strip a value; empty strings become None."""
    if value is None:
        return None
    raw = str(value).strip()
    return raw or None


def parse_optional_int(value) -> int | None:
    """Parse optional int from form/query/JSON."""
    if value is None or isinstance(value, bool):
        return None
    raw = str(value).strip()
    if raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def parse_decimal(value) -> Decimal | None:
    """Parse decimal from user input (accepts comma or dot)."""
    if value is None:
        return None
    raw = str(value).strip().replace(",", ".")
    if raw == "":
        return None
    try:
        return Decimal(raw)
    except (InvalidOperation, ValueError):
        return None


def parse_datetime(value) -> datetime | None:
    """Parse an ISO date or datetime string ("2025-03-10", "2025-03-10T08:00:00Z")."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raw = str(value).strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1]
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return _naive_utc(parsed)


def _naive_utc(value: datetime) -> datetime:
    """Stored naive (UTC): offsets are converted, naive values are taken as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def is_valid_email(value: str | None) -> bool:
    return bool(value and EMAIL_RE.match(value))


# ---------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------
def convert_file_size(size_in_bytes: int, digits: int | None = None) -> str:
    """Human readable file size: Bytes / KB / MB / GB."""
    if size_in_bytes < 1024:
        return f"{size_in_bytes} Bytes"
    if size_in_bytes < 1024 * 1024:
        return f"{size_in_bytes / 1024:.{digits or 1}f} KB"
    if size_in_bytes < 1024 * 1024 * 1024:
        return f"{size_in_bytes / (1024 * 1024):.{digits or 1}f} MB"
    return f"{size_in_bytes / (1024 * 1024 * 1024):.{digits or 2}f} GB"


def get_name_initials(full_name: str) -> str:
    """First letter of the first and last word, uppercased ("Juan Dela Cruz" -> "JC")."""
    parts = full_name.strip().split()
    if not parts:
        return ""
    return (parts[0][0] + parts[-1][0]).upper()


def file_name_from_url(url: str | None) -> str:
    """Last path segment of a URL, or "File"."""
    if not url:
        return "File"
    path = urlparse(url).path
    return path.rstrip("/").split("/")[-1] or "File"


def status_color(status: str | None) -> str:
    """
    Badge color for a ticket status.

    REVISED is included for the derived "revised tickets" bucket.
    """
    colors = {
        "FOR CANVASS": "indigo.6",
        "WORK IN PROGRESS": "blue.6",
        "FOR REVIEW OF SUBMISSIONS": "violet.6",
        "FOR APPROVAL": "teal.6",
        "FOR REVISION": "orange.6",
        "DONE": "green.6",
        "CANCELED": "red.7",
        "REVISED": "yellow.4",
    }
    return colors.get((status or "").strip(), "gray.6")


def role_color(role: str | None) -> str:
    colors = {
        "ADMIN": "red",
        "MANAGER": "teal",
        "REVIEWER": "yellow",
        "PURCHASER": "blue",
    }
    return colors.get((role or "").strip(), "gray")

"""Request payload helpers for the test-suite."""

from __future__ import annotations

from io import BytesIO


def upload(content: bytes = b"file-content", filename: str = "file.pdf"):
    """Multipart file tuple for the Flask test client."""
    return (BytesIO(content), filename)


def canvass_payload(**files) -> dict:
    data = {
        "rf_date_received": "2025-03-12",
        "recommended_supplier": "Acme Supplies",
        "lead_time_day": "5",
        "total_amount": "1250.50",
        "payment_terms": "30 days",
    }
    data.update(files)
    return data

# backend/booking_engine/core/ulid_helper.py
"""ULID generation helper utilities."""

from datetime import datetime

import ulid


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return str(ulid.ULID())


def generate_booking_number(created_at: datetime) -> str:
    """
    Build the human-facing booking reference ``BK-YYYYMMDD-XXXXXX``.

    The suffix is the tail of a fresh ULID, so it is random Crockford base32.
    """
    return f"BK-{created_at.strftime('%Y%m%d')}-{generate_ulid()[-6:]}"

"""
Utility functions for Iamport API integration.

Usage:
    from iamporter.utils import mask_card_number, to_timestamp

    logger.info("Charging card", extra={"card_number": mask_card_number(card_number)})
    client.find_all_by_status("paid", since=to_timestamp(date(2025, 1, 1)))
"""

import re
import time
from datetime import date, datetime


def mask_card_number(card_no: str | None) -> str:
    """
    Mask card number for display, keeping first 4 and last 4 digits.

    Args:
        card_no: Full or partially masked card number

    Returns:
        Masked card number (e.g., "1234-****-****-5678")

    Examples:
        >>> mask_card_number("1234567890123456")
        '1234-****-****-3456'
        >>> mask_card_number("1234-5678-9012-3456")
        '1234-****-****-3456'
    """
    if not card_no:
        return ""

    digits = re.sub(r"[^0-9]", "", card_no)

    if len(digits) < 8:
        return card_no  # Return as-is if too short

    return f"{digits[:4]}-****-****-{digits[-4:]}"


def to_timestamp(value: int | float | date | datetime) -> int:
    """
    Convert a date, datetime or number to a unix timestamp.

    Iamport list filters (``from``/``to``) take unix seconds. Naive
    datetimes and dates are interpreted in local time.

    Examples:
        >>> to_timestamp(1700000000.5)
        1700000000
    """
    if isinstance(value, datetime):
        return int(value.timestamp())
    if isinstance(value, date):
        return int(time.mktime(value.timetuple()))
    return int(value)

"""Shared validation utilities"""

import re
from typing import Optional


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to E.164 format.

    Russian numbers written with a leading 8 (8XXXXXXXXXX) are rewritten to +7.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number (+XXXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    if len(digits) == 11 and digits.startswith("8"):
        digits = "7" + digits[1:]
    elif len(digits) == 10:
        digits = "7" + digits

    if not 11 <= len(digits) <= 15:
        raise ValueError("Phone number must have 10 to 15 digits")

    return f"+{digits}"


def validate_car_number(car_number: Optional[str]) -> Optional[str]:
    """Uppercase and collapse whitespace in a vehicle registration plate"""
    if car_number is None:
        return car_number

    plate = " ".join(car_number.split()).upper()
    if not plate:
        raise ValueError("Car number is required")
    if len(plate) > 20:
        raise ValueError("Car number is too long")
    return plate

"""
Field normalization for values coming back from the categorization service.
Handles amounts written as strings and dates in alternate formats.
"""
import math
import re
from datetime import datetime
from typing import Any, Optional

from core.logger import setup_logger

logger = setup_logger(__name__)

DATE_FORMAT = "%d/%m/%Y"

# Formats accepted and rewritten to DD/MM/YYYY
_ALTERNATE_DATE_FORMATS = ("%Y-%m-%d", "%d-%m-%Y", "%d.%m.%Y", "%d/%m/%y")

_THOUSANDS_DOT = re.compile(r"^\d{1,3}(\.\d{3}){2,}$")
_THOUSANDS_COMMA = re.compile(r"^\d{1,3}(,\d{3}){2,}$")


def clean_amount(value: Any) -> Optional[float]:
    """
    Clean and normalize a signed amount.
    Accepts numbers and strings such as "-1.234,56", "$ 1,234.56" or "(350.00)".

    Args:
        value: Raw amount value (string or number)

    Returns:
        Finite float value or None if invalid
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        result = float(value)
        return result if math.isfinite(result) else None

    if not isinstance(value, str):
        return None

    amount_str = value.strip().replace("\xa0", "").replace(" ", "")
    if not amount_str:
        return None

    negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        negative = True
        amount_str = amount_str[1:-1]
    if amount_str.endswith("-"):
        negative = True
        amount_str = amount_str[:-1]
    if "-" in amount_str:
        negative = True

    # Keep digits and separators only ("UYU 1.500,00", "$-20")
    digits = "".join(ch for ch in amount_str if ch.isdigit() or ch in ".,")
    if not any(ch.isdigit() for ch in digits):
        logger.warning(f"Failed to parse amount: '{value}' - no numeric content")
        return None

    if "," in digits and "." in digits:
        if digits.rfind(",") > digits.rfind("."):
            digits = digits.replace(".", "").replace(",", ".")
        else:
            digits = digits.replace(",", "")
    elif "," in digits:
        if _THOUSANDS_COMMA.match(digits):
            digits = digits.replace(",", "")
        else:
            digits = digits.replace(",", ".")
    elif _THOUSANDS_DOT.match(digits):
        digits = digits.replace(".", "")

    try:
        result = float(digits)
    except ValueError as e:
        logger.warning(f"Failed to parse amount: '{value}' -> {e}")
        return None

    if not math.isfinite(result):
        return None
    return -result if negative else result


def normalize_date(value: Any) -> str:
    """
    Normalize a transaction date to DD/MM/YYYY.
    Unrecognised values are returned trimmed and unchanged.
    """
    if value is None:
        return ""
    text = str(value).strip()
    if not text:
        return ""

    try:
        return datetime.strptime(text, DATE_FORMAT).strftime(DATE_FORMAT)
    except ValueError:
        pass

    for fmt in _ALTERNATE_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime(DATE_FORMAT)
        except ValueError:
            continue

    return text

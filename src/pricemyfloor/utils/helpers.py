"""
General helper functions
"""
import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

POSTAL_CODE_PATTERN = re.compile(r"^[A-Z]\d[A-Z]\s*\d[A-Z]\d$", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
MAX_EMAIL_LENGTH = 100
MAX_TEXT_LENGTH = 500


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_postal_code(postal_code: str) -> str:
    """Uppercase and strip all whitespace: 'm5v 3a8' -> 'M5V3A8'"""
    return re.sub(r"\s+", "", postal_code or "").upper()


def is_valid_postal_code(postal_code: str) -> bool:
    """Canadian postal code, space between the halves optional"""
    return bool(POSTAL_CODE_PATTERN.match((postal_code or "").strip()))


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or "")) and len(email) <= MAX_EMAIL_LENGTH


def is_valid_phone(phone: Optional[str]) -> bool:
    """Optional field: empty passes, otherwise digits with an optional leading +"""
    if not phone:
        return True
    return bool(PHONE_PATTERN.match(re.sub(r"[\s\-\(\)]", "", phone)))


def format_phone_e164(phone: str) -> str:
    """
    Format a North American phone number as E.164.

    10 digits get a +1 prefix, 11 digits starting with 1 get a +.
    Anything else is returned with a leading + if it lacks one.
    """
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    return phone if phone.startswith("+") else f"+{digits}"


def sanitize_text(value: Optional[str], max_length: int = MAX_TEXT_LENGTH) -> Optional[str]:
    """Trim and cap free text; empty strings become None"""
    if value is None:
        return None
    cleaned = value.strip()[:max_length]
    return cleaned or None


def to_cents(amount: Decimal) -> int:
    """Convert a currency amount to integer cents"""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def safe_get(data: Dict[str, Any], *keys, default: Any = None) -> Any:
    """
    Safely get nested dictionary values.

    Args:
        data: Dictionary to search
        *keys: Keys to traverse
        default: Default value if key not found

    Returns:
        Value or default
    """
    result = data
    for key in keys:
        if isinstance(result, dict):
            result = result.get(key)
            if result is None:
                return default
        else:
            return default
    return result if result is not None else default

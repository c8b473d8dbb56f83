"""
Lead pricing and square footage resolution
"""
import re
from decimal import Decimal
from typing import Optional

from pricemyfloor.core.config import PricingConfig, settings
from pricemyfloor.utils.exceptions import ValidationError

_FIRST_INTEGER = re.compile(r"\d[\d,]*")


def calculate_lead_price(square_footage: int, pricing: Optional[PricingConfig] = None) -> Decimal:
    """
    Price of one lead for a project size.

    Tiers are ascending with inclusive upper bounds; the first tier whose bound
    is >= square_footage wins, anything larger pays the overflow price.
    """
    pricing = pricing or settings.pricing
    for tier in pricing.tiers:
        if square_footage <= tier.max_sqft:
            return tier.price
    return pricing.overflow_price


def parse_square_footage(size_text: Optional[str]) -> Optional[int]:
    """
    First integer in a free-text size, thousands separators allowed.

    "500 sq ft" -> 500, "1,000-2,000 sq ft" -> 1000, "large" -> None
    """
    if not size_text:
        return None
    match = _FIRST_INTEGER.search(size_text)
    if not match:
        return None
    return int(match.group(0).replace(",", ""))


def resolve_square_footage(square_footage: Optional[int], project_size: Optional[str]) -> int:
    """
    Square footage for matching and pricing.

    An explicit integer wins over the free-text size.

    Raises:
        ValidationError: If neither yields a non-negative integer
    """
    if square_footage is None:
        square_footage = parse_square_footage(project_size)
    if square_footage is None:
        raise ValidationError(
            f"Could not determine square footage from project size {project_size!r}"
        )
    if square_footage < 0:
        raise ValidationError("Square footage must not be negative")
    return square_footage

"""
Lead-to-retailer matching rules.

Pure functions over plain values and ORM rows; no database access.
"""
from typing import Iterable, Optional, Sequence

from pricemyfloor.database.models import (
    BrandSubscription,
    InstallationPreference,
    UrgencyPreference,
)
from pricemyfloor.utils.helpers import normalize_postal_code


def postal_code_matches(lead_postal_code: str, prefixes: Optional[Sequence[str]]) -> bool:
    """
    True when the retailer covers the lead's postal code.

    An empty prefix list means no restriction. Otherwise some prefix must be a
    literal left-anchored prefix of the normalized postal code.
    """
    if not prefixes:
        return True
    postal = normalize_postal_code(lead_postal_code)
    for prefix in prefixes:
        normalized = normalize_postal_code(prefix)
        if normalized and postal[: len(normalized)] == normalized:
            return True
    return False


def subscription_matches(
    subscription: BrandSubscription,
    brand: str,
    square_footage: int,
    no_preference_brand: str,
) -> bool:
    """Active, same brand (or lead has no preference), and size within the inclusive band"""
    if not subscription.is_active:
        return False
    if brand != no_preference_brand and subscription.brand_name != brand:
        return False
    tier_min = subscription.sqft_tier_min or 0
    if square_footage < tier_min:
        return False
    if subscription.sqft_tier_max is not None and square_footage > subscription.sqft_tier_max:
        return False
    return True


def any_subscription_matches(
    subscriptions: Iterable[BrandSubscription],
    brand: str,
    square_footage: int,
    no_preference_brand: str,
) -> bool:
    return any(
        subscription_matches(sub, brand, square_footage, no_preference_brand)
        for sub in subscriptions
    )


def installation_matches(preference: str, installation_required: bool) -> bool:
    """
    supply_only takes leads without installation, supply_and_install only
    leads with installation, both takes everything. Unknown values never match.
    """
    if preference == InstallationPreference.BOTH.value:
        return True
    if preference == InstallationPreference.SUPPLY_ONLY.value:
        return not installation_required
    if preference == InstallationPreference.SUPPLY_AND_INSTALL.value:
        return bool(installation_required)
    return False


def is_asap(timeline: Optional[str], asap_timeline: str) -> bool:
    return (timeline or "").strip().lower() == asap_timeline.strip().lower()


def urgency_matches(preference: str, timeline: Optional[str], asap_timeline: str) -> bool:
    """any takes everything; asap_only only ASAP leads; flexible everything else"""
    if preference == UrgencyPreference.ANY.value:
        return True
    if preference == UrgencyPreference.ASAP_ONLY.value:
        return is_asap(timeline, asap_timeline)
    if preference == UrgencyPreference.FLEXIBLE.value:
        return not is_asap(timeline, asap_timeline)
    return False

from decimal import Decimal

import pytest

from pricemyfloor.core.config import PriceTier, PricingConfig
from pricemyfloor.services.pricing import (
    calculate_lead_price,
    parse_square_footage,
    resolve_square_footage,
)
from pricemyfloor.utils.exceptions import ValidationError


@pytest.mark.parametrize(
    "sqft, price",
    [
        (0, "1.00"),
        (100, "1.00"),
        (101, "2.50"),
        (500, "2.50"),
        (501, "3.50"),
        (1000, "3.50"),
        (1001, "5.00"),
        (5000, "5.00"),
        (5001, "10.00"),
        (1_000_000, "10.00"),
    ],
)
def test_price_tiers(sqft, price):
    assert calculate_lead_price(sqft) == Decimal(price)


def test_price_is_monotonic():
    prices = [calculate_lead_price(sqft) for sqft in range(0, 7000, 50)]
    assert prices == sorted(prices)


def test_custom_price_table():
    pricing = PricingConfig(
        tiers=[PriceTier(max_sqft=10, price=Decimal("0.50"))],
        overflow_price=Decimal("99.00"),
    )
    assert calculate_lead_price(10, pricing) == Decimal("0.50")
    assert calculate_lead_price(11, pricing) == Decimal("99.00")


def test_unsorted_price_table_is_rejected():
    with pytest.raises(ValueError):
        PricingConfig(
            tiers=[
                PriceTier(max_sqft=500, price=Decimal("2.50")),
                PriceTier(max_sqft=100, price=Decimal("1.00")),
            ]
        )


@pytest.mark.parametrize(
    "text, expected",
    [
        ("500 sq ft", 500),
        ("1,000-2,000 sq ft", 1000),
        ("about 750", 750),
        ("large", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_square_footage(text, expected):
    assert parse_square_footage(text) == expected


def test_explicit_square_footage_wins():
    assert resolve_square_footage(320, "1,000 sq ft") == 320


def test_square_footage_falls_back_to_text():
    assert resolve_square_footage(None, "1,200 sq ft") == 1200


def test_unresolvable_square_footage_is_an_error():
    with pytest.raises(ValidationError) as exc:
        resolve_square_footage(None, "a big kitchen")
    assert exc.value.status_code == 400


def test_negative_square_footage_is_an_error():
    with pytest.raises(ValidationError):
        resolve_square_footage(-5, None)

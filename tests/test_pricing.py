from decimal import Decimal, InvalidOperation

import pytest

from pricing import (
    calculate_price,
    cart_totals,
    delivery_price,
    fabric_price_difference,
    format_price,
    money,
    size_price_difference,
)
from seed_data import BED_FABRIC_CATEGORIES, BED_SIZES


@pytest.fixture()
def bed():
    return {
        "base_price": 41900,
        "category": "bed",
        "sizes": BED_SIZES,
        "fabric_categories": BED_FABRIC_CATEGORIES,
        "has_lifting_mechanism": True,
        "lifting_mechanism_price": 8500,
        "discount": 10,
    }


def config(**overrides):
    out = {
        "selected_size": "double",
        "custom_width": None,
        "custom_length": None,
        "selected_fabric_category": "standard",
        "has_lifting_mechanism": False,
    }
    out.update(overrides)
    return out


def test_baseline_configuration_applies_discount(bed):
    res = calculate_price(bed, config())
    assert res["subtotal"] == Decimal("41900.00")
    assert res["discount_percent"] == 10
    assert res["discount_amount"] == Decimal("4190.00")
    assert res["total"] == Decimal("37710.00")


def test_full_breakdown_sums_to_subtotal(bed):
    res = calculate_price(bed, config(selected_size="queen", selected_fabric_category="premium",
                                      has_lifting_mechanism=True))
    assert res["size_difference"] == Decimal("3000.00")
    assert res["fabric_difference"] == Decimal("12570.00")
    assert res["lifting_mechanism"] == Decimal("8500.00")
    assert res["subtotal"] == (res["base_price"] + res["size_difference"]
                               + res["fabric_difference"] + res["lifting_mechanism"])
    assert res["total"] == Decimal("59373.00")


def test_custom_size_priced_by_area(bed):
    res = calculate_price(bed, config(selected_size="custom", custom_width=160, custom_length=220))
    assert res["size_difference"] == Decimal("720.00")
    assert res["subtotal"] == Decimal("42620.00")


@pytest.mark.parametrize("w,l,expected", [
    (140, 200, Decimal("0")),
    (141, 200, Decimal("20")),
    (140, 201, Decimal("14")),
    (120, 200, Decimal("-400")),
])
def test_custom_size_continuous_around_baseline(w, l, expected):
    assert size_price_difference("custom", BED_SIZES, w, l) == expected


def test_custom_size_starts_from_baseline_delta():
    sizes = [{"id": "double", "price": 1000}]
    assert size_price_difference("custom", sizes, 140, 200) == Decimal("1000")


def test_unknown_ids_price_as_zero(bed):
    assert size_price_difference("huge", BED_SIZES) == 0
    assert fabric_price_difference("gold", BED_FABRIC_CATEGORIES, 41900) == 0


@pytest.mark.parametrize("base", [0, 1, 41900, "99999.99"])
def test_standard_fabric_is_always_free(base):
    cats = [{"id": "standard", "price_multiplier": 1.5}]
    assert fabric_price_difference("standard", cats, base) == 0


def test_economy_fabric_lowers_price():
    assert money(fabric_price_difference("economy", BED_FABRIC_CATEGORIES, 41900)) == Decimal("-8380.00")


def test_lifting_mechanism_only_for_beds(bed):
    mattress = dict(bed, category="mattress")
    assert calculate_price(mattress, config(has_lifting_mechanism=True))["lifting_mechanism"] == 0

    no_option = dict(bed, has_lifting_mechanism=False)
    assert calculate_price(no_option, config(has_lifting_mechanism=True))["lifting_mechanism"] == 0


def test_negative_total_is_not_clamped(bed):
    cheap = dict(bed, base_price=1000)
    res = calculate_price(cheap, config(selected_size="single"))
    assert res["subtotal"] == Decimal("-4000.00")
    assert res["total"] == Decimal("-3600.00")


def test_zero_discount(bed):
    res = calculate_price(dict(bed, discount=0), config())
    assert res["discount_amount"] == 0
    assert res["total"] == res["subtotal"]


LINES = [
    {"price": Decimal("37710"), "quantity": 2, "discount": 10},
    {"price": Decimal("28900"), "quantity": 1, "discount": 0},
    {"price": "1234.50", "quantity": 3, "discount": 15},
]


def test_cart_totals():
    res = cart_totals(LINES)
    assert res["subtotal"] == Decimal("108023.50")
    assert res["discount"] == Decimal("8097.53")
    assert res["total"] == res["subtotal"] - res["discount"]
    assert res["items_count"] == 6


def test_cart_totals_ignore_line_order():
    assert cart_totals(LINES) == cart_totals(list(reversed(LINES)))


def test_empty_cart_totals():
    assert cart_totals([]) == {"subtotal": 0, "discount": 0, "total": 0, "items_count": 0}


SETTINGS = {"enable_free_delivery": True, "free_delivery_threshold": 20000, "delivery_price_local": 500}


def test_delivery_price():
    assert delivery_price("pickup", 100, SETTINGS) == 0
    assert delivery_price("courier", 20000, SETTINGS) == 0
    assert delivery_price("courier", 19999, SETTINGS) == Decimal("500.00")
    assert delivery_price("courier", 50000, dict(SETTINGS, enable_free_delivery=False)) == Decimal("500.00")
    assert delivery_price("courier", 50000) == Decimal("500.00")


@pytest.mark.parametrize("value,expected", [
    (0, "0"),
    (999, "999"),
    (37710, "37 710"),
    (Decimal("1234567.5"), "1 234 568"),
])
def test_format_price(value, expected):
    assert format_price(value) == expected


@pytest.mark.parametrize("value", ["Infinity", "-Infinity", "NaN", float("inf")])
def test_money_rejects_non_finite(value):
    with pytest.raises(InvalidOperation):
        money(value)

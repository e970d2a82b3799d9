"""
test_pricing_tiers.py - Quantity tier step function.

Tier upper bounds are inclusive: 100 -> 1.15, 101 -> 1.08.
"""

import pytest

from src.bom.pricing_tiers import BULK_MULTIPLIER, MOQ_TIERS, moq_multiplier, tier_table


@pytest.mark.parametrize("quantity,expected", [
    (1, 1.15),
    (100, 1.15),
    (101, 1.08),
    (300, 1.08),
    (301, 1.00),
    (500, 1.00),
    (501, 0.92),
    (1000, 0.92),
    (1001, 0.85),
    (3000, 0.85),
    (3001, 0.80),
    (250000, 0.80),
])
def test_tier_boundaries(quantity, expected):
    assert moq_multiplier(quantity) == expected


def test_non_numeric_quantity_falls_in_smallest_tier():
    assert moq_multiplier(None) == MOQ_TIERS[0][1]
    assert moq_multiplier("lots") == MOQ_TIERS[0][1]


def test_numeric_strings_are_accepted():
    assert moq_multiplier("1,200") == 0.85


def test_tier_table_is_contiguous():
    rows = tier_table()
    assert rows[0]["min_quantity"] == 1
    for prev, nxt in zip(rows, rows[1:]):
        assert nxt["min_quantity"] == prev["max_quantity"] + 1
    assert rows[-1]["max_quantity"] is None
    assert rows[-1]["multiplier"] == BULK_MULTIPLIER

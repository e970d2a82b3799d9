"""
Quantity Pricing Tiers

Small-order penalties and bulk-order discounts applied to landed cost.
Static step function, no interpolation between tiers.
"""
from typing import Any, List, Tuple

from .models import coerce_float

# (inclusive upper bound on order quantity, multiplier), evaluated top-down
MOQ_TIERS: List[Tuple[int, float]] = [
    (100, 1.15),
    (300, 1.08),
    (500, 1.00),
    (1000, 0.92),
    (3000, 0.85),
]
BULK_MULTIPLIER = 0.80


def moq_multiplier(quantity: Any) -> float:
    """Return the cost multiplier for an order of the given size."""
    qty = coerce_float(quantity, 0.0)
    for upper, multiplier in MOQ_TIERS:
        if qty <= upper:
            return multiplier
    return BULK_MULTIPLIER


def tier_table() -> List[dict]:
    """Tier rows for display, including the open-ended bulk tier."""
    rows = []
    lower = 1
    for upper, multiplier in MOQ_TIERS:
        rows.append({"min_quantity": lower, "max_quantity": upper, "multiplier": multiplier})
        lower = upper + 1
    rows.append({"min_quantity": lower, "max_quantity": None, "multiplier": BULK_MULTIPLIER})
    return rows

"""
Cost Calculator

Turns a final BOM plus project cost settings into a landed-cost and
pricing breakdown. All arithmetic runs at full float precision; each value
is rounded to cents only when it is placed into the breakdown.

Layering (order matters):
    materials -> + CMT -> overhead on (materials + CMT) -> FOB
    -> duty on FOB -> + freight -> landed -> x MOQ multiplier
    -> x wholesale markup -> x retail markup
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from .models import (
    BomCategory, BomLineItem, CostBreakdown, CostSettings, coerce_float,
)
from .pricing_tiers import moq_multiplier

logger = logging.getLogger(__name__)

DEFAULT_MOQ_QUANTITIES = (100, 500, 1000)

LineInput = Union[BomLineItem, Mapping[str, Any]]
SettingsInput = Union[CostSettings, Mapping[str, Any]]


def round_money(value: float) -> float:
    """Round half-up to cents on the decimal representation of value."""
    return float(Decimal(repr(float(value))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _as_item(item: LineInput) -> Optional[BomLineItem]:
    """Validated line item, or None for a row that cannot be read at all."""
    if isinstance(item, BomLineItem):
        return item
    try:
        return BomLineItem.model_validate(dict(item))
    except (ValidationError, TypeError, ValueError) as e:
        logger.debug(f"Skipping unreadable BOM row {item!r}: {e}")
        return None


def _as_settings(settings: Optional[SettingsInput]) -> CostSettings:
    if isinstance(settings, CostSettings):
        return settings
    return CostSettings.model_validate(dict(settings or {}))


def extended_cost(item: LineInput) -> float:
    """unit_price x consumption x (1 + wastage%), unrounded. Unreadable rows cost 0."""
    item = _as_item(item)
    if item is None:
        return 0.0
    return item.unit_price * item.consumption * (1 + item.wastage / 100)


def category_subtotals(bom: Iterable[LineInput]) -> Dict[str, float]:
    """Unrounded extended-cost totals for every BOM category."""
    totals = {category.value: 0.0 for category in BomCategory}
    for item in bom:
        item = _as_item(item)
        if item is not None:
            totals[item.category] += extended_cost(item)
    return totals


def compute(bom: Iterable[LineInput], settings: Optional[SettingsInput] = None) -> CostBreakdown:
    """Full cost breakdown for one garment at the settings' order quantity."""
    settings = _as_settings(settings)
    subtotals = category_subtotals(bom)

    materials = sum(subtotals.values())
    cmt = settings.cmt_cost
    overhead = settings.overhead_pct / 100 * (materials + cmt)
    fob = materials + cmt + overhead
    duty = settings.duty_pct / 100 * fob
    freight = settings.shipping_per_unit
    landed = fob + duty + freight

    multiplier = moq_multiplier(settings.quantity)
    adjusted_landed = landed * multiplier
    wholesale = adjusted_landed * settings.markup_ws
    retail = wholesale * settings.markup_retail

    return CostBreakdown(
        category_subtotals={k: round_money(v) for k, v in subtotals.items()},
        materials_subtotal=round_money(materials),
        cmt_labor=round_money(cmt),
        overhead=round_money(overhead),
        fob_cost=round_money(fob),
        duty=round_money(duty),
        freight=round_money(freight),
        landed_cost=round_money(landed),
        moq_multiplier=multiplier,
        adjusted_landed_cost=round_money(adjusted_landed),
        wholesale_price=round_money(wholesale),
        retail_price=round_money(retail),
        unit_count=settings.quantity,
        total_order_cost=round_money(adjusted_landed * settings.quantity),
    )


def implied_margin_from_retail(landed_cost: Any, target_retail: Any, markup_retail: Any) -> Dict[str, float]:
    """Work backwards from a target retail price to the wholesale multiple it implies."""
    landed = coerce_float(landed_cost)
    retail = coerce_float(target_retail)
    retail_multiple = coerce_float(markup_retail)

    wholesale = retail / retail_multiple if retail_multiple else 0.0
    ws_multiple = wholesale / landed if landed else 0.0
    return {
        "implied_wholesale": round_money(wholesale),
        "implied_ws_multiple": round_money(ws_multiple),
        "implied_retail": round_money(retail),
    }


def moq_comparison(bom: Iterable[LineInput], settings: Optional[SettingsInput] = None,
                   quantities: Sequence[int] = DEFAULT_MOQ_QUANTITIES) -> List[Dict[str, Any]]:
    """Per-unit and total cost at several candidate order quantities."""
    settings = _as_settings(settings)
    bom = list(bom)
    rows = []
    for qty in quantities:
        breakdown = compute(bom, settings.model_copy(update={"quantity": int(qty)}))
        rows.append({
            "quantity": int(qty),
            "moq_multiplier": breakdown.moq_multiplier,
            "fob_per_unit": breakdown.fob_cost,
            "landed_per_unit": breakdown.adjusted_landed_cost,
            "wholesale_per_unit": breakdown.wholesale_price,
            "total_order": breakdown.total_order_cost,
        })
    return rows

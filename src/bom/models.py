"""
BOM Data Model

Line items, confirmed design features, per-project cost settings and the
derived cost breakdown. Numeric inputs are coerced rather than rejected so a
single bad row can never abort a cost computation.
"""
import math
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BomCategory(str, Enum):
    FABRIC = "fabric"
    TRIM = "trim"
    LABEL = "label"
    THREAD = "thread"
    PACKAGING = "packaging"


class PriceSource(str, Enum):
    DEFAULT_ASIA = "default_asia"
    USER_ADDED = "user_added"
    USER_EDITED = "user_edited"
    USER_SELECTED = "user_selected"


def coerce_float(value: Any, default: float = 0.0) -> float:
    """Convert anything number-like to a finite float, falling back to default."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def coerce_amount(value: Any) -> float:
    """Non-negative float; invalid or negative input becomes 0."""
    return max(0.0, coerce_float(value, 0.0))


def coerce_int(value: Any, default: int = 0) -> int:
    number = coerce_float(value, float(default))
    return int(number)


class BomLineItem(BaseModel):
    """One priced component consumed per finished garment."""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    category: BomCategory
    component: str = ""
    material: str = ""
    composition: str = ""
    specification: Optional[str] = None
    notes: Optional[str] = None
    unit_price: float = 0.0
    unit: str = "piece"
    consumption: float = 0.0
    wastage: float = 0.0
    price_source: PriceSource = PriceSource.DEFAULT_ASIA
    sort_order: int = 0

    @field_validator("component", "material", "composition", mode="before")
    @classmethod
    def _text(cls, v):
        return "" if v is None else str(v)

    @field_validator("specification", "notes", mode="before")
    @classmethod
    def _optional_text(cls, v):
        return None if v is None else str(v)

    @field_validator("unit", mode="before")
    @classmethod
    def _unit(cls, v):
        return str(v) if v else "piece"

    @field_validator("unit_price", "consumption", "wastage", mode="before")
    @classmethod
    def _amount(cls, v):
        return coerce_amount(v)

    @field_validator("price_source", mode="before")
    @classmethod
    def _price_source(cls, v):
        if isinstance(v, PriceSource):
            return v
        if isinstance(v, str) and v in {s.value for s in PriceSource}:
            return v
        return PriceSource.USER_EDITED

    @field_validator("sort_order", mode="before")
    @classmethod
    def _sort_order(cls, v):
        return coerce_int(v)

    def to_record(self) -> Dict[str, Any]:
        """Flat dict suitable for persistence or JSON export."""
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "BomLineItem":
        return cls.model_validate(record)


class ConfirmedFeatures(BaseModel):
    """Design features confirmed in the wizard's first step.

    A flag left as None has not been confirmed either way and neither
    removes nor adds components.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    hasHood: Optional[bool] = None
    hasDrawcord: Optional[bool] = None
    hasZipper: Optional[bool] = None
    hasPockets: Optional[bool] = None
    hasRibCuffs: Optional[bool] = None
    hasRibHem: Optional[bool] = None
    hasThumbHoles: Optional[bool] = None

    pocketType: Optional[str] = None
    zipperType: Optional[str] = None
    hoodStyle: Optional[str] = None
    subType: Optional[str] = None

    def flag(self, name: str) -> Optional[bool]:
        value = getattr(self, name, None)
        return value if isinstance(value, bool) else None


class CostSettings(BaseModel):
    """Per-project business settings. Read by the calculator, never mutated."""
    model_config = ConfigDict(frozen=True)

    overhead_pct: float = 12.0
    duty_pct: float = 16.5
    shipping_per_unit: float = 0.80
    markup_ws: float = 2.5
    markup_retail: float = 2.0
    cmt_cost: float = 4.00
    quantity: int = 500

    @field_validator(
        "overhead_pct", "duty_pct", "shipping_per_unit",
        "markup_ws", "markup_retail", "cmt_cost",
        mode="before",
    )
    @classmethod
    def _number(cls, v, info):
        default = cls.model_fields[info.field_name].default
        return coerce_float(v, default)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v):
        return coerce_int(v, cls.model_fields["quantity"].default)


class CostBreakdown(BaseModel):
    """Derived cost and pricing record. Recomputed on demand, never stored."""
    category_subtotals: Dict[str, float] = Field(default_factory=dict)
    materials_subtotal: float
    cmt_labor: float
    overhead: float
    fob_cost: float
    duty: float
    freight: float
    landed_cost: float
    moq_multiplier: float
    adjusted_landed_cost: float
    wholesale_price: float
    retail_price: float
    unit_count: int
    total_order_cost: float

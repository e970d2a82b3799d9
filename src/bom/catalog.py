"""
Material Catalog

Default material, trim, label, thread and packaging prices (China/Asia
factory defaults), CMT labor rates and landed-cost defaults by garment
subtype. These are starting-point prices used when a project BOM is first
seeded; every value is editable per project afterwards.

The catalog is built once per process and never mutated. A reload builds a
new instance and swaps the cached reference.
"""
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from .models import BomLineItem, CostSettings, PriceSource

logger = logging.getLogger(__name__)

CATALOG_VERSION = "2025.03"

SUB_TYPES = (
    "oversized_hoodie",
    "pullover_hoodie",
    "zip_hoodie",
    "unisex_hoodie",
    "crewneck",
    "sweatpants",
)


def normalize_key(value: Optional[str]) -> str:
    """'Zip Hoodie' / 'zip-hoodie' -> 'zip_hoodie'."""
    return (value or "").strip().lower().replace(" ", "_").replace("-", "_")


@dataclass(frozen=True)
class MaterialDefault:
    unit_price: float
    unit: str
    consumption: float
    wastage: float
    composition: str = ""
    specification: Optional[str] = None


# Body fabrics: USD per yard, consumption in yards per garment, wastage in %
FABRIC_DEFAULTS = {
    "French Terry": MaterialDefault(4.20, "yard", 1.75, 12, "80% Cotton / 20% Polyester", "280 GSM"),
    "Fleece": MaterialDefault(3.80, "yard", 1.80, 12, "80% Cotton / 20% Polyester", "300 GSM"),
    "Jersey": MaterialDefault(3.20, "yard", 1.60, 12, "100% Cotton", "180 GSM"),
    "Interlock": MaterialDefault(3.60, "yard", 1.65, 12, "100% Cotton", "220 GSM"),
    "Waffle Knit": MaterialDefault(4.50, "yard", 1.70, 14, "100% Cotton", "260 GSM"),
    "Thermal": MaterialDefault(4.00, "yard", 1.75, 13, "100% Cotton", "240 GSM"),
    "Loopback Terry": MaterialDefault(4.80, "yard", 1.80, 12, "80% Cotton / 20% Polyester", "320 GSM"),
    "Brushed Fleece": MaterialDefault(4.10, "yard", 1.80, 12, "80% Cotton / 20% Polyester", "290 GSM"),
}

RIB_DEFAULTS = {
    "1x1 Rib": MaterialDefault(3.50, "yard", 0.25, 15, "95% Cotton / 5% Spandex", "240 GSM"),
    "2x2 Rib": MaterialDefault(3.70, "yard", 0.25, 15, "95% Cotton / 5% Spandex", "260 GSM"),
    "Flat Rib": MaterialDefault(3.30, "yard", 0.20, 15, "95% Cotton / 5% Spandex", "220 GSM"),
    "Pointelle": MaterialDefault(4.20, "yard", 0.22, 15, "100% Cotton", "200 GSM"),
}

TRIM_DEFAULTS = {
    "YKK Metal #5 Zipper": MaterialDefault(1.20, "piece", 1, 0, "Metal/Polyester", "#5 gauge"),
    "YKK Nylon #5 Zipper": MaterialDefault(0.85, "piece", 1, 0, "Nylon/Polyester", "#5 gauge"),
    "Flat Cotton Drawcord": MaterialDefault(0.35, "piece", 1, 0, "100% Cotton", "5mm flat"),
    "Round Cotton Drawcord": MaterialDefault(0.40, "piece", 1, 0, "100% Cotton", "5mm round"),
    "Metal Grommets": MaterialDefault(0.12, "piece", 2, 0, "Metal", "10mm ID"),
    "Cord Lock": MaterialDefault(0.15, "piece", 1, 0, "Plastic"),
    "Pocket Lining": MaterialDefault(0.30, "piece", 1, 0, "100% Cotton", "150 GSM"),
    "Woven Elastic (35mm)": MaterialDefault(0.45, "piece", 1, 0, "Polyester/Rubber", "35mm width"),
}

LABEL_DEFAULTS = {
    "Main Woven Label": MaterialDefault(0.08, "piece", 1, 0, "Polyester"),
    "Care Label (Printed)": MaterialDefault(0.04, "piece", 1, 0, "Polyester Satin"),
    "Size Label (Printed)": MaterialDefault(0.03, "piece", 1, 0, "Polyester Satin"),
    "Hang Tag": MaterialDefault(0.06, "piece", 1, 0, "Paper"),
}

PACKAGING_DEFAULTS = {
    "Polybag": MaterialDefault(0.03, "piece", 1, 0, "LDPE", "Self-seal"),
    "Tissue Paper": MaterialDefault(0.02, "piece", 1, 0, "Paper"),
    "Sticker Label": MaterialDefault(0.02, "piece", 1, 0, "Paper"),
}

THREAD_DEFAULTS = {
    "Poly-Poly Thread": MaterialDefault(0.08, "piece", 1, 0, "100% Polyester", "40/2"),
}

# Body and rib consumption differ by garment family (yards per garment)
BODY_CONSUMPTION = {
    "hoodie": 1.75,
    "sweatshirt": 1.55,
    "sweatpants": 1.95,
}

RIB_CONSUMPTION = {
    "hoodie": 0.25,
    "sweatshirt": 0.30,
    "sweatpants": 0.18,
}

# Named rows used by templates and feature additions.
# Pricing comes from the material tables above.
CATALOG_ROWS = {
    "body_fabric": {"category": "fabric", "component": "Body Fabric", "material": "French Terry"},
    "rib_fabric": {"category": "fabric", "component": "Rib Fabric", "material": "1x1 Rib"},
    "drawcord": {"category": "trim", "component": "Drawcord", "material": "Flat Cotton Drawcord",
                 "notes": "Hood drawstring"},
    "waist_drawcord": {"category": "trim", "component": "Drawcord", "material": "Flat Cotton Drawcord",
                       "notes": "Waistband"},
    "grommets": {"category": "trim", "component": "Grommets", "material": "Metal Grommets",
                 "notes": "2 pcs for drawcord"},
    "zipper_metal": {"category": "trim", "component": "Zipper", "material": "YKK Metal #5 Zipper",
                     "notes": "Full front zip"},
    "zipper_nylon": {"category": "trim", "component": "Zipper", "material": "YKK Nylon #5 Zipper",
                     "notes": "Full front zip"},
    "elastic": {"category": "trim", "component": "Elastic", "material": "Woven Elastic (35mm)",
                "notes": "Waistband"},
    "pocket_bag": {"category": "trim", "component": "Pocket Bag", "material": "Pocket Lining",
                   "notes": "Pocket bag lining"},
    "main_label": {"category": "label", "component": "Main Label", "material": "Main Woven Label",
                   "notes": "Inside back neck"},
    "size_label": {"category": "label", "component": "Size Label", "material": "Size Label (Printed)",
                   "notes": "Inside side seam"},
    "care_label": {"category": "label", "component": "Care Label", "material": "Care Label (Printed)",
                   "notes": "Inside side seam"},
    "thread": {"category": "thread", "component": "Thread", "material": "Poly-Poly Thread",
               "notes": "All construction"},
    "polybag": {"category": "packaging", "component": "Polybag", "material": "Polybag",
                "notes": "Individual garment bag"},
}

# CMT (cut-make-trim) labor per garment, USD
CMT_DEFAULTS = {
    "oversized_hoodie": 4.20,
    "pullover_hoodie": 4.00,
    "zip_hoodie": 4.50,
    "unisex_hoodie": 4.00,
    "crewneck": 3.50,
    "sweatpants": 3.80,
}

CMT_RANGES = {
    "oversized_hoodie": (3.80, 5.50),
    "pullover_hoodie": (3.50, 5.00),
    "zip_hoodie": (4.00, 5.50),
    "unisex_hoodie": (3.50, 5.00),
    "crewneck": (3.00, 4.50),
    "sweatpants": (3.20, 4.50),
}

# Import duty by HTS heading, percent of FOB
HTS_CODES = {
    "knit_cotton_tops": {"code": "6110.20", "description": "Jerseys, pullovers and similar articles, of cotton, knitted", "duty_pct": 16.5},
    "knit_fleece_tops": {"code": "6110.30", "description": "Jerseys, pullovers and similar articles, of man-made fibres", "duty_pct": 32.0},
    "woven_bottoms": {"code": "6203.42", "description": "Men's or boys' trousers, of cotton", "duty_pct": 16.6},
    "knit_bottoms": {"code": "6104.62", "description": "Women's trousers of cotton, knitted", "duty_pct": 28.2},
}

# Sea freight per unit by shipping weight class
SHIPPING_WEIGHT_CLASS = {
    "oversized_hoodie": {"weight_kg": 0.55, "sea_freight_per_unit": 0.90},
    "pullover_hoodie": {"weight_kg": 0.42, "sea_freight_per_unit": 0.80},
    "zip_hoodie": {"weight_kg": 0.46, "sea_freight_per_unit": 0.85},
    "unisex_hoodie": {"weight_kg": 0.42, "sea_freight_per_unit": 0.80},
    "crewneck": {"weight_kg": 0.38, "sea_freight_per_unit": 0.75},
    "sweatpants": {"weight_kg": 0.35, "sea_freight_per_unit": 0.70},
}

COST_DEFAULTS = {
    "overhead_pct": 12.0,      # on materials + CMT
    "duty_pct": 16.5,          # HTS 6110.20 cotton knit tops
    "shipping_per_unit": 0.80,
    "markup_ws": 2.5,
    "markup_retail": 2.0,
    "cmt_cost": 4.00,
}


def _freeze(table: Mapping) -> Mapping:
    return MappingProxyType(dict(table))


@dataclass(frozen=True)
class Catalog:
    """Read-only view over the default pricing tables."""
    version: str = CATALOG_VERSION
    fabrics: Mapping[str, MaterialDefault] = field(default_factory=lambda: _freeze(FABRIC_DEFAULTS))
    ribs: Mapping[str, MaterialDefault] = field(default_factory=lambda: _freeze(RIB_DEFAULTS))
    trims: Mapping[str, MaterialDefault] = field(default_factory=lambda: _freeze(TRIM_DEFAULTS))
    labels: Mapping[str, MaterialDefault] = field(default_factory=lambda: _freeze(LABEL_DEFAULTS))
    packaging: Mapping[str, MaterialDefault] = field(default_factory=lambda: _freeze(PACKAGING_DEFAULTS))
    threads: Mapping[str, MaterialDefault] = field(default_factory=lambda: _freeze(THREAD_DEFAULTS))
    rows: Mapping[str, Mapping[str, str]] = field(
        default_factory=lambda: _freeze({k: _freeze(v) for k, v in CATALOG_ROWS.items()})
    )
    body_consumption: Mapping[str, float] = field(default_factory=lambda: _freeze(BODY_CONSUMPTION))
    rib_consumption: Mapping[str, float] = field(default_factory=lambda: _freeze(RIB_CONSUMPTION))
    cmt_defaults: Mapping[str, float] = field(default_factory=lambda: _freeze(CMT_DEFAULTS))
    cmt_ranges: Mapping[str, tuple] = field(default_factory=lambda: _freeze(CMT_RANGES))
    shipping_classes: Mapping[str, Mapping] = field(default_factory=lambda: _freeze(SHIPPING_WEIGHT_CLASS))
    cost_defaults: Mapping[str, float] = field(default_factory=lambda: _freeze(COST_DEFAULTS))

    def material_default(self, name: str) -> Optional[MaterialDefault]:
        """Look a material up across all tables; None when unknown."""
        for table in (self.fabrics, self.ribs, self.trims, self.labels, self.packaging, self.threads):
            if name in table:
                return table[name]
        return None

    def catalog_row(self, key: str, **overrides) -> Optional[BomLineItem]:
        """Build a fresh priced line item for a named catalog row."""
        row = self.rows.get(key)
        if row is None:
            return None
        default = self.material_default(row["material"])
        values = {
            "category": row["category"],
            "component": row["component"],
            "material": row["material"],
            "composition": default.composition if default else "",
            "specification": default.specification if default else None,
            "notes": row.get("notes"),
            "unit_price": default.unit_price if default else 0.0,
            "unit": default.unit if default else "piece",
            "consumption": default.consumption if default else 1.0,
            "wastage": default.wastage if default else 0.0,
            "price_source": PriceSource.DEFAULT_ASIA,
        }
        values.update(overrides)
        return BomLineItem(**values)

    def cmt_default(self, sub_type: Optional[str]) -> float:
        return float(self.cmt_defaults.get(normalize_key(sub_type), self.cost_defaults["cmt_cost"]))

    def freight_default(self, sub_type: Optional[str]) -> float:
        weight_class = self.shipping_classes.get(normalize_key(sub_type))
        if not weight_class:
            return float(self.cost_defaults["shipping_per_unit"])
        return float(weight_class["sea_freight_per_unit"])

    def default_cost_settings(self, sub_type: Optional[str], quantity: int = 500) -> CostSettings:
        """Starting cost settings for a new project of the given subtype."""
        return CostSettings(
            overhead_pct=self.cost_defaults["overhead_pct"],
            duty_pct=self.cost_defaults["duty_pct"],
            shipping_per_unit=self.freight_default(sub_type),
            markup_ws=self.cost_defaults["markup_ws"],
            markup_retail=self.cost_defaults["markup_retail"],
            cmt_cost=self.cmt_default(sub_type),
            quantity=quantity,
        )

    def material_options(self) -> Dict[str, list]:
        """Material names grouped for selection dropdowns."""
        return {
            "body_fabrics": list(self.fabrics),
            "rib_fabrics": list(self.ribs),
            "zippers": [n for n in self.trims if "Zipper" in n],
            "drawcords": [n for n in self.trims if "Drawcord" in n],
            "trims": list(self.trims),
            "labels": list(self.labels),
            "threads": list(self.threads),
            "packaging": list(self.packaging),
        }


def build_catalog() -> Catalog:
    """Construct a new catalog instance from the module tables."""
    return Catalog()


@lru_cache()
def get_catalog() -> Catalog:
    catalog = build_catalog()
    logger.info(f"Loaded material catalog v{catalog.version}")
    return catalog


def reload_catalog() -> Catalog:
    """Discard the cached catalog and build a fresh one."""
    get_catalog.cache_clear()
    return get_catalog()

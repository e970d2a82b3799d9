"""
BOM Templates

Baseline bill of materials per garment family. Row order is fixed:
fabrics, conditional trims, labels, thread, packaging.
"""
import logging
from typing import List, Optional

from .catalog import Catalog, get_catalog, normalize_key
from .models import BomLineItem

logger = logging.getLogger(__name__)

DEFAULT_FAMILY = "hoodie"

# Category aliases -> garment family
CATEGORY_FAMILIES = {
    "hoodie": "hoodie",
    "hoodies": "hoodie",
    "sweatshirt": "sweatshirt",
    "sweatshirts": "sweatshirt",
    "crewneck": "sweatshirt",
    "sweatpants": "sweatpants",
    "joggers": "sweatpants",
}

SUBTYPE_FAMILIES = {
    "oversized_hoodie": "hoodie",
    "pullover_hoodie": "hoodie",
    "zip_hoodie": "hoodie",
    "unisex_hoodie": "hoodie",
    "crewneck": "sweatshirt",
    "sweatpants": "sweatpants",
}

# Trim rows each family structurally implies, in template order
FAMILY_TRIMS = {
    "hoodie": ["drawcord", "grommets"],
    "sweatshirt": [],
    "sweatpants": ["elastic", "waist_drawcord", "pocket_bag"],
}

# Extra trims implied by a specific subtype, appended after the family trims
SUBTYPE_TRIMS = {
    "zip_hoodie": ["zipper_metal"],
}

LABEL_ROWS = ["main_label", "size_label", "care_label"]
THREAD_ROWS = ["thread"]
PACKAGING_ROWS = ["polybag"]

FABRIC_NOTES = {
    "hoodie": ("Main body, sleeves, hood", "Cuffs and hem"),
    "sweatshirt": ("Main body and sleeves", "Cuffs, hem, neckband"),
    "sweatpants": ("Main body, legs", "Leg cuffs"),
}

CONSTRUCTION_TEMPLATES = {
    "hoodie": [
        ("seams", '5/8" seam allowance throughout. Side seams and sleeve seams: overlock (serger) stitch. Shoulder seams: double-needle flatlock.'),
        ("finishing", "Bottom hem and cuffs: attach 1x1 rib band with overlock stitch, then topstitch with coverstitch for clean finish."),
        ("hood", "Hood: two-panel construction, top seam with overlock. Attach hood to neckline with overlock, then topstitch. Thread drawcord through hood channel and secure with grommets at front."),
        ("pocket", "Kangaroo pocket: attach to front body, bar-tack at corners for reinforcement. Overlock raw edges before attachment."),
        ("labels", 'Main woven label: sewn at center back neck. Size label + care label: sewn together at left side seam, 2" below armhole.'),
        ("quality", "Inspect all seams for consistency. Check rib attachment tension. Verify drawcord passes freely through hood channel. Steam press finished garment."),
    ],
    "sweatshirt": [
        ("seams", '5/8" seam allowance. Side seams and sleeve seams: overlock stitch. Shoulder seams: double-needle flatlock.'),
        ("finishing", "Bottom hem and cuffs: 1x1 rib band, overlock attach, coverstitch topstitch. Neckband: 1x1 rib, overlock attach, topstitch."),
        ("labels", 'Main woven label: center back neck. Size + care label: left side seam, 2" below armhole.'),
        ("quality", "Check all seam consistency. Inspect neckband attachment. Steam press finished garment."),
    ],
    "sweatpants": [
        ("seams", '5/8" seam allowance. Inseam and outseam: overlock stitch. Crotch seam: reinforced with double overlock pass.'),
        ("waistband", "Elastic waistband: fold-over construction enclosing 35mm elastic. Stitch channel with two rows of coverstitch. Thread drawcord through front channel with tunnel opening at center front."),
        ("pockets", "Side pockets: attach pocket bag to outseam before closing. Overlock pocket bag edges. Bar-tack pocket openings at top and bottom."),
        ("cuffs", "Leg cuffs: attach 1x1 rib with overlock, topstitch with coverstitch."),
        ("labels", "Main woven label: inside back waist, center. Size + care label: inside left side seam, below waistband."),
        ("quality", "Check elastic tension and drawcord passage. Verify pocket attachment. Inspect all seams. Steam press finished garment."),
    ],
}


def garment_family(category: Optional[str], sub_type: Optional[str] = None) -> str:
    """Pick the template family.

    Category decides bottoms vs tops; within tops the subtype decides
    hoodie vs crewneck. Unknown input falls back to the hoodie family.
    """
    cat_family = CATEGORY_FAMILIES.get(normalize_key(category))
    sub_family = SUBTYPE_FAMILIES.get(normalize_key(sub_type))

    if cat_family == "sweatpants":
        return "sweatpants"
    if cat_family is not None:
        if sub_family in ("hoodie", "sweatshirt"):
            return sub_family
        return cat_family
    if sub_family is not None:
        return sub_family
    return DEFAULT_FAMILY


def resolve(category: Optional[str], sub_type: Optional[str] = None,
            catalog: Optional[Catalog] = None) -> List[BomLineItem]:
    """Return the baseline ordered BOM for a garment."""
    catalog = catalog or get_catalog()
    family = garment_family(category, sub_type)
    body_notes, rib_notes = FABRIC_NOTES[family]

    rows = [
        catalog.catalog_row("body_fabric", consumption=catalog.body_consumption[family], notes=body_notes),
        catalog.catalog_row("rib_fabric", consumption=catalog.rib_consumption[family], notes=rib_notes),
    ]

    sub_key = normalize_key(sub_type)
    trim_keys = list(FAMILY_TRIMS[family])
    # Subtype trims only apply when the subtype belongs to the resolved family
    if SUBTYPE_FAMILIES.get(sub_key) == family:
        trim_keys += SUBTYPE_TRIMS.get(sub_key, [])
    for key in trim_keys + LABEL_ROWS + THREAD_ROWS + PACKAGING_ROWS:
        rows.append(catalog.catalog_row(key))

    logger.debug(f"Resolved {family} template ({len(rows)} rows) for {category}/{sub_type}")
    return [row.model_copy(update={"sort_order": i}) for i, row in enumerate(rows)]


def construction_notes(category: Optional[str], sub_type: Optional[str] = None) -> List[dict]:
    """Default construction notes for a garment family."""
    family = garment_family(category, sub_type)
    return [
        {"section": section, "content": content, "sort_order": i}
        for i, (section, content) in enumerate(CONSTRUCTION_TEMPLATES[family])
    ]


FAMILY_DEFAULT_SUBTYPES = {
    "hoodie": "pullover_hoodie",
    "sweatshirt": "crewneck",
    "sweatpants": "sweatpants",
}


def default_sub_type(category: Optional[str], sub_type: Optional[str] = None) -> str:
    """The given subtype if known, else the family's most common one."""
    if normalize_key(sub_type) in SUBTYPE_FAMILIES:
        return normalize_key(sub_type)
    return FAMILY_DEFAULT_SUBTYPES[garment_family(category, sub_type)]

"""Read-only catalog endpoints."""
from typing import Optional

from fastapi import APIRouter, HTTPException

from ..bom.catalog import get_catalog, SUB_TYPES
from ..bom.features import default_features, pom_groups
from ..bom.pricing_tiers import tier_table
from ..bom.templates import default_sub_type, resolve

router = APIRouter()


@router.get("/bom/catalog", tags=["Catalog"])
async def catalog_overview():
    """Catalog version, material options and quantity tiers."""
    catalog = get_catalog()
    return {
        "version": catalog.version,
        "sub_types": list(SUB_TYPES),
        "materials": catalog.material_options(),
        "cmt_ranges": {k: {"min": lo, "max": hi} for k, (lo, hi) in catalog.cmt_ranges.items()},
        "moq_tiers": tier_table(),
    }


@router.get("/bom/catalog/materials/{name}", tags=["Catalog"])
async def material_detail(name: str):
    """Default pricing for a single material."""
    default = get_catalog().material_default(name)
    if default is None:
        raise HTTPException(status_code=404, detail="Material not found")
    return {
        "name": name,
        "unit_price": default.unit_price,
        "unit": default.unit,
        "consumption": default.consumption,
        "wastage": default.wastage,
        "composition": default.composition,
        "specification": default.specification,
    }


@router.get("/bom/templates/{category}", tags=["Catalog"])
async def template_preview(category: str, sub_type: Optional[str] = None):
    """Baseline BOM, default features and POM groups for a garment."""
    features = default_features(default_sub_type(category, sub_type))
    return {
        "category": category,
        "sub_type": sub_type,
        "items": [item.to_record() for item in resolve(category, sub_type)],
        "default_features": features.model_dump(),
        "pom_groups": pom_groups(features),
    }

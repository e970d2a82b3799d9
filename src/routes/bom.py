"""BOM endpoints: seed, replace, upsert, material selection and feature cascade."""
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel

from ..db import get_db
from ..bom.models import BomCategory, BomLineItem, ConfirmedFeatures
from ..bom.service import ProjectBomService, serialize_bom_item
from ..bom.templates import construction_notes

router = APIRouter()


# Pydantic Models
# Numeric fields are left untyped so malformed numbers are coerced to 0
# by BomLineItem instead of rejected.

class BomItemInput(BaseModel):
    id: Optional[int] = None
    category: BomCategory
    component: Optional[str] = None
    material: Optional[str] = None
    composition: Optional[str] = None
    specification: Optional[str] = None
    notes: Optional[str] = None
    unit_price: Any = None
    unit: Optional[str] = None
    consumption: Any = None
    wastage: Any = None
    price_source: Optional[str] = None
    sort_order: Any = None


class BomReplace(BaseModel):
    items: List[BomItemInput]


class BomItemUpsert(BaseModel):
    id: Optional[int] = None
    category: Optional[BomCategory] = None
    component: Optional[str] = None
    material: Optional[str] = None
    composition: Optional[str] = None
    specification: Optional[str] = None
    notes: Optional[str] = None
    unit_price: Any = None
    unit: Optional[str] = None
    consumption: Any = None
    wastage: Any = None
    price_source: Optional[str] = None
    sort_order: Any = None


class MaterialSelection(BaseModel):
    component: str
    material: str
    composition: Optional[str] = None
    specification: Optional[str] = None
    unit_price: Optional[float] = None
    consumption: Optional[float] = None
    wastage: Optional[float] = None


def _bom_response(service: ProjectBomService, project_id: int, rows) -> dict:
    cost = service.cost_breakdown(project_id)
    return {
        "bom": [serialize_bom_item(r) for r in rows],
        "cost_breakdown": cost["breakdown"] if cost else None
    }


# Endpoints

@router.get("/projects/{project_id}/bom", tags=["BOM"])
async def get_bom(project_id: int, db: Session = Depends(get_db)):
    """BOM items; seeded from the garment template on first access."""
    rows = ProjectBomService(db).get_or_seed_bom(project_id)
    if rows is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return {"bom": [serialize_bom_item(r) for r in rows]}


@router.put("/projects/{project_id}/bom", tags=["BOM"])
async def replace_bom(project_id: int, data: BomReplace, db: Session = Depends(get_db)):
    """Full replace of the project's BOM. Rows without sort_order keep their list position."""
    lines = []
    for i, item in enumerate(data.items):
        record = item.model_dump(exclude={"id"}, exclude_none=True)
        record.setdefault("sort_order", i)
        lines.append(BomLineItem.from_record(record))

    service = ProjectBomService(db)
    rows = service.replace_bom(project_id, lines)
    if rows is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return _bom_response(service, project_id, rows)


@router.patch("/projects/{project_id}/bom/items", tags=["BOM"])
async def upsert_bom_item(project_id: int, data: BomItemUpsert, db: Session = Depends(get_db)):
    """Insert one row (no id) or partially update an existing row (with id)."""
    if data.id is None and data.category is None:
        raise HTTPException(status_code=400, detail="category is required for new items")

    service = ProjectBomService(db)
    if not service.get_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")

    values = data.model_dump(exclude={"id"}, exclude_none=True, mode="json")
    row = service.upsert_item(project_id, values, item_id=data.id)
    if row is None:
        raise HTTPException(status_code=404, detail="BOM item not found")
    return {
        "item": serialize_bom_item(row),
        "cost_breakdown": service.cost_breakdown(project_id)["breakdown"]
    }


@router.patch("/projects/{project_id}/materials", tags=["BOM"])
async def select_material(project_id: int, data: MaterialSelection, db: Session = Depends(get_db)):
    """Choose a material for a component; pricing defaults come from the catalog."""
    service = ProjectBomService(db)
    rows = service.swap_material(
        project_id,
        data.component,
        data.material,
        overrides=data.model_dump(exclude={"component", "material"}),
    )
    if rows is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return _bom_response(service, project_id, rows)


@router.patch("/projects/{project_id}/features", tags=["BOM"])
async def confirm_features(project_id: int, features: ConfirmedFeatures, db: Session = Depends(get_db)):
    """Confirm design features and rebuild the BOM from template + feature cascade."""
    service = ProjectBomService(db)
    rows = service.apply_confirmed_features(project_id, features)
    if rows is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return _bom_response(service, project_id, rows)


@router.get("/projects/{project_id}/construction", tags=["BOM"])
async def get_construction_notes(project_id: int, db: Session = Depends(get_db)):
    """Default construction notes for the project's garment family."""
    project = ProjectBomService(db).get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return {"construction": construction_notes(project.category, project.sub_type)}

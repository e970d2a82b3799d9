"""Cost breakdown, cost settings and export endpoints."""
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from pydantic import BaseModel

from ..db import get_db
from ..bom.service import ProjectBomService

router = APIRouter()


class CostSettingsUpdate(BaseModel):
    overhead_pct: Any = None
    duty_pct: Any = None
    shipping_per_unit: Any = None
    markup_ws: Any = None
    markup_retail: Any = None
    cmt_cost: Any = None
    quantity: Any = None


@router.get("/projects/{project_id}/cost", tags=["Cost"])
async def get_cost(
    project_id: int,
    target_retail: Optional[float] = None,
    db: Session = Depends(get_db)
):
    """Full cost breakdown, MOQ comparison and current settings."""
    service = ProjectBomService(db)
    if service.get_or_seed_bom(project_id) is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return service.cost_breakdown(project_id, target_retail=target_retail)


@router.patch("/projects/{project_id}/cost", tags=["Cost"])
async def update_cost(project_id: int, data: CostSettingsUpdate, db: Session = Depends(get_db)):
    """Merge a partial settings update and return the recomputed breakdown."""
    result = ProjectBomService(db).update_cost_settings(
        project_id, data.model_dump(exclude_none=True)
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return result


@router.get("/projects/{project_id}/export/json", tags=["Export"])
async def export_json(project_id: int, db: Session = Depends(get_db)):
    """Project, BOM and cost breakdown as one downloadable record."""
    record = ProjectBomService(db).export_record(project_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Project not found")

    slug = "".join(c if c.isalnum() else "_" for c in record["project"]["title"].lower())[:40]
    return JSONResponse(
        content=record,
        headers={"Content-Disposition": f'attachment; filename="bom_{slug}.json"'}
    )

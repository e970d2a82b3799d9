"""Project endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel

from ..config import get_settings
from ..db import get_db, Project
from ..bom.service import ProjectBomService, serialize_project

settings = get_settings()
router = APIRouter()


class ProjectCreate(BaseModel):
    title: str
    category: str
    sub_type: Optional[str] = None
    quantity: Optional[int] = None
    overhead_pct: Optional[float] = None
    duty_pct: Optional[float] = None
    shipping_per_unit: Optional[float] = None
    markup_ws: Optional[float] = None
    markup_retail: Optional[float] = None
    cmt_cost: Optional[float] = None


@router.get("/projects", tags=["Projects"])
async def list_projects(
    category: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db)
):
    """List projects, newest first."""
    query = db.query(Project)
    if category:
        query = query.filter(Project.category == category)

    total = query.count()
    projects = query.order_by(Project.id.desc()).offset(skip).limit(limit).all()

    return {
        "total": total,
        "projects": [serialize_project(p) for p in projects]
    }


@router.post("/projects", tags=["Projects"])
async def create_project(data: ProjectCreate, db: Session = Depends(get_db)):
    """Create a project; cost settings start from the catalog defaults for its subtype."""
    service = ProjectBomService(db)
    project = service.create_project(
        title=data.title,
        category=data.category,
        sub_type=data.sub_type,
        quantity=data.quantity or settings.default_quantity,
        settings_overrides=data.model_dump(exclude={"title", "category", "sub_type", "quantity"}),
    )
    return {
        "success": True,
        "project": serialize_project(project)
    }


@router.get("/projects/{project_id}", tags=["Projects"])
async def get_project(project_id: int, db: Session = Depends(get_db)):
    project = ProjectBomService(db).get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return {"project": serialize_project(project)}


@router.delete("/projects/{project_id}", tags=["Projects"])
async def delete_project(project_id: int, db: Session = Depends(get_db)):
    """Delete a project together with its BOM."""
    if not ProjectBomService(db).delete_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return {"success": True, "project_id": project_id}

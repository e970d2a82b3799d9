"""Health check and status endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from pydantic import BaseModel

from ..config import get_settings
from ..db import get_db
from ..event_bus import event_bus
from ..bom.catalog import get_catalog

settings = get_settings()
router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    module: str
    database: str
    event_bus: str
    catalog_version: str


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        db_status = f"error: {str(e)}"

    event_bus_status = "connected" if event_bus.is_connected() else "disconnected"

    return HealthResponse(
        status="healthy",
        module="BOM",
        database=db_status,
        event_bus=event_bus_status,
        catalog_version=get_catalog().version
    )


@router.get("/bom/events/status", tags=["Events"])
async def event_bus_status_check():
    """Check event bus connection status."""
    return {
        "connected": event_bus.is_connected(),
        "redis_url": settings.redis_url[:30] + "..." if settings.redis_url else None,
        "webhook_configured": bool(settings.event_webhook_url)
    }


@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "module": "BOM",
        "name": "Garment BOM Costing",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs"
    }

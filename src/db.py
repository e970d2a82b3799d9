"""
Database models for the BOM Costing Service

Handles:
- Garment projects and their cost settings
- BOM line items (full replace and single-item upsert)
"""
from datetime import datetime
from sqlalchemy import (
    create_engine, Column, Integer, String, Float, DateTime, Text, ForeignKey, JSON, Index
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship

from .config import get_settings

settings = get_settings()


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 5, "max_overflow": 10}


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
    **_engine_options(settings.database_url)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# ============== Projects ==============

class Project(Base):
    """A garment being developed, with its costing inputs."""
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False)  # hoodie, sweatshirt, sweatpants
    sub_type = Column(String(50))  # pullover_hoodie, zip_hoodie, crewneck, ...

    # Confirmed design features (JSON for schema evolution)
    confirmed_features = Column(JSON)

    # Cost settings
    overhead_pct = Column(Float, default=12.0)
    duty_pct = Column(Float, default=16.5)
    shipping_per_unit = Column(Float, default=0.80)
    markup_ws = Column(Float, default=2.5)
    markup_retail = Column(Float, default=2.0)
    cmt_cost = Column(Float, default=4.00)
    quantity = Column(Integer, default=500)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bom_items = relationship(
        "BomItem", back_populates="project",
        cascade="all, delete-orphan", order_by="BomItem.sort_order"
    )


# ============== Bill of Materials ==============

class BomItem(Base):
    """One priced BOM row for a project."""
    __tablename__ = "bom_items"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    category = Column(String(20), nullable=False)  # fabric, trim, label, thread, packaging
    component = Column(String(255), nullable=False)  # cascade matching key
    material = Column(String(255))
    composition = Column(String(255))
    specification = Column(String(255))
    notes = Column(Text)

    unit_price = Column(Float, default=0)
    unit = Column(String(20), default="piece")
    consumption = Column(Float, default=0)  # units per finished garment
    wastage = Column(Float, default=0)  # percent
    price_source = Column(String(50), default="default_asia")

    sort_order = Column(Integer, default=0)

    project = relationship("Project", back_populates="bom_items")

    __table_args__ = (
        Index("ix_bom_items_project_sort", "project_id", "sort_order"),
    )


def init_db():
    """Create all tables."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Dependency for FastAPI."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

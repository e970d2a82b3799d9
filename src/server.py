"""
Garment BOM Costing - FastAPI Server

BOM composition from garment templates and confirmed features,
landed-cost and retail pricing breakdowns per project.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from .config import get_settings
from .db import init_db
from .event_bus import event_bus
from .bom.catalog import get_catalog
from .routes import bom, catalog, cost, health, projects

settings = get_settings()
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info("Starting BOM Costing service...")

    try:
        init_db()
        logger.info("Database initialized")
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}")

    get_catalog()
    logger.info("BOM Costing startup complete")
    yield

    logger.info("Shutting down BOM Costing service...")
    event_bus.disconnect()


app = FastAPI(
    title="Garment BOM Costing",
    description="""
    Bill of Materials and cost engine for cut-and-sew knit garments

    ## Features
    - **BOM Templates**: Baseline BOM per garment category and subtype
    - **Feature Cascade**: Confirmed design features add or remove trims
    - **Material Selection**: Catalog-priced material swaps per component
    - **Cost Breakdown**: Materials, CMT, overhead, FOB, duty, freight, landed cost
    - **Pricing**: Quantity-tier adjustment, wholesale and retail pricing
    """,
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(catalog.router)
app.include_router(projects.router)
app.include_router(bom.router)
app.include_router(cost.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8004)

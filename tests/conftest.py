"""
conftest.py - Shared pytest fixtures for the BOM costing test suite.

Engine tests are pure unit tests over in-memory records. API tests run the
FastAPI app against an in-memory SQLite database through a get_db override;
no Redis or external services are needed.

Import-path bootstrapping:
    The repository root is inserted into sys.path so that ``src.*`` imports
    resolve regardless of where pytest is invoked.
"""

import os
import sys
import pytest

_ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _ROOT_DIR not in sys.path:
    sys.path.insert(0, _ROOT_DIR)

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("EVENT_WEBHOOK_URL", "")


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def catalog():
    """A freshly built catalog, independent of the process-wide cached one."""
    from src.bom.catalog import build_catalog
    return build_catalog()


@pytest.fixture
def pullover_bom(catalog):
    """Baseline pullover hoodie BOM (no zipper, drawcord + grommets)."""
    from src.bom.templates import resolve
    return resolve("hoodie", "pullover_hoodie", catalog)


@pytest.fixture
def zip_bom(catalog):
    """Baseline zip hoodie BOM (includes a metal zipper row)."""
    from src.bom.templates import resolve
    return resolve("hoodie", "zip_hoodie", catalog)


@pytest.fixture
def scenario_settings():
    """
    Cost settings for the reference scenario.

    quantity=250 (1.08 tier), overhead 12 %, duty 16.5 %, freight 0.80/unit,
    CMT 4.00, wholesale x2.5, retail x2.0.
    """
    from src.bom.models import CostSettings
    return CostSettings(
        overhead_pct=12,
        duty_pct=16.5,
        shipping_per_unit=0.80,
        cmt_cost=4.00,
        markup_ws=2.5,
        markup_retail=2.0,
        quantity=250,
    )


def make_line(component="Body Fabric", category="fabric", unit_price=1.0,
              consumption=1.0, wastage=0.0, sort_order=0, **extra):
    """Build a BomLineItem with sensible defaults for tests."""
    from src.bom.models import BomLineItem
    return BomLineItem(
        category=category,
        component=component,
        unit_price=unit_price,
        consumption=consumption,
        wastage=wastage,
        sort_order=sort_order,
        **extra
    )


@pytest.fixture
def line():
    return make_line


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    """TestClient bound to a throwaway in-memory SQLite database."""
    from fastapi.testclient import TestClient
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.pool import StaticPool

    from src.db import Base, get_db
    from src.server import app

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def hoodie_project(client):
    """A pullover hoodie project ordered at 250 units."""
    response = client.post("/projects", json={
        "title": "Heavyweight Pullover",
        "category": "hoodie",
        "sub_type": "pullover_hoodie",
        "quantity": 250,
    })
    assert response.status_code == 200
    return response.json()["project"]

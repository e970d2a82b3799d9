"""
Project BOM Service

Persistence orchestration around the pure BOM engine: seeds a project's
BOM from its template, applies full replaces and single-item upserts,
rebuilds the BOM when features are confirmed, and computes cost
breakdowns from stored settings.

Write paths lock the project row so read-modify-write cycles on the same
project are serialised on databases that support SELECT ... FOR UPDATE.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..db import Project, BomItem
from ..event_bus import publish_bom_rebuilt, publish_bom_replaced, publish_cost_settings_updated
from .calculator import compute, extended_cost, implied_margin_from_retail, moq_comparison, round_money
from .catalog import Catalog, get_catalog, normalize_key
from .features import apply_features
from .models import BomLineItem, ConfirmedFeatures, CostSettings, PriceSource
from .pricing_tiers import tier_table
from .templates import resolve

logger = logging.getLogger(__name__)

LINE_FIELDS = (
    "category", "component", "material", "composition", "specification", "notes",
    "unit_price", "unit", "consumption", "wastage", "price_source", "sort_order",
)
SETTINGS_FIELDS = tuple(CostSettings.model_fields)
PRICING_FIELDS = ("unit_price", "consumption", "wastage")


def to_line_item(row: BomItem) -> BomLineItem:
    return BomLineItem.from_record({f: getattr(row, f) for f in LINE_FIELDS})


def serialize_bom_item(row: BomItem) -> Dict[str, Any]:
    line = to_line_item(row)
    record = line.to_record()
    record["id"] = row.id
    record["total_cost"] = round_money(extended_cost(line))
    return record


def serialize_project(project: Project) -> Dict[str, Any]:
    return {
        "id": project.id,
        "title": project.title,
        "category": project.category,
        "sub_type": project.sub_type,
        "confirmed_features": project.confirmed_features,
        "cost_settings": project_settings(project).model_dump(),
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
    }


def project_settings(project: Project) -> CostSettings:
    return CostSettings.model_validate({f: getattr(project, f) for f in SETTINGS_FIELDS})


def _new_row(project_id: int, line: BomLineItem) -> BomItem:
    return BomItem(project_id=project_id, **line.to_record())


def unique_sort_orders(lines: Iterable[BomLineItem]) -> List[BomLineItem]:
    """Lines in sort order; renumbered 0..n-1 when two share a sort_order."""
    ordered = sorted(lines, key=lambda line: line.sort_order)
    if len({line.sort_order for line in ordered}) == len(ordered):
        return ordered
    return [line.model_copy(update={"sort_order": i}) for i, line in enumerate(ordered)]


class ProjectBomService:
    """BOM and cost operations for stored projects."""

    def __init__(self, db: Session, catalog: Optional[Catalog] = None):
        self.db = db
        self.catalog = catalog or get_catalog()

    # ---------- projects ----------

    def create_project(self, title: str, category: str, sub_type: Optional[str] = None,
                       quantity: Optional[int] = None,
                       settings_overrides: Optional[Dict[str, Any]] = None) -> Project:
        """Create a project with cost settings seeded from the catalog."""
        sub_type = normalize_key(sub_type) or None
        defaults = self.catalog.default_cost_settings(sub_type, quantity or 500)
        values = defaults.model_dump()
        values.update({k: v for k, v in (settings_overrides or {}).items()
                       if k in SETTINGS_FIELDS and v is not None})
        cost_settings = CostSettings.model_validate(values)

        project = Project(
            title=title,
            category=normalize_key(category),
            sub_type=sub_type,
            **cost_settings.model_dump()
        )
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        logger.info(f"Created project {project.id} ({project.category}/{project.sub_type})")
        return project

    def get_project(self, project_id: int) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id).first()

    def delete_project(self, project_id: int) -> bool:
        project = self._lock_project(project_id)
        if not project:
            return False
        self.db.delete(project)
        self.db.commit()
        logger.info(f"Deleted project {project_id} and its BOM")
        return True

    def _lock_project(self, project_id: int) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id).with_for_update().first()

    def _rows(self, project_id: int) -> List[BomItem]:
        return (
            self.db.query(BomItem)
            .filter(BomItem.project_id == project_id)
            .order_by(BomItem.sort_order, BomItem.id)
            .all()
        )

    def _write_back(self, project: Project, lines: Iterable[BomLineItem]) -> List[BomItem]:
        project.bom_items = [_new_row(project.id, line) for line in lines]
        self.db.commit()
        return self._rows(project.id)

    # ---------- BOM ----------

    def get_or_seed_bom(self, project_id: int) -> Optional[List[BomItem]]:
        """Current BOM, seeded from the garment template the first time it is empty."""
        project = self.get_project(project_id)
        if not project:
            return None

        rows = self._rows(project_id)
        if rows:
            return rows

        project = self._lock_project(project_id)
        rows = self._rows(project_id)
        if rows:
            return rows

        lines = resolve(project.category, project.sub_type, self.catalog)
        if project.confirmed_features:
            lines = apply_features(lines, project.confirmed_features, self.catalog)

        rows = self._write_back(project, lines)
        logger.info(f"Seeded BOM for project {project_id} with {len(rows)} items")
        publish_bom_replaced(project_id, len(rows), seeded=True)
        return rows

    def replace_bom(self, project_id: int, lines: Iterable[BomLineItem]) -> Optional[List[BomItem]]:
        """Full replace of a project's BOM."""
        project = self._lock_project(project_id)
        if not project:
            return None

        rows = self._write_back(project, unique_sort_orders(lines))
        logger.info(f"Replaced BOM for project {project_id} ({len(rows)} items)")
        publish_bom_replaced(project_id, len(rows))
        return rows

    def upsert_item(self, project_id: int, values: Dict[str, Any],
                    item_id: Optional[int] = None) -> Optional[BomItem]:
        """Insert a new row or partially update an existing one.

        Returns None when the project (or the given item) does not exist.
        """
        project = self._lock_project(project_id)
        if not project:
            return None

        values = {k: v for k, v in values.items() if k in LINE_FIELDS and v is not None}

        if item_id is not None:
            row = self.db.query(BomItem).filter(
                BomItem.id == item_id, BomItem.project_id == project_id
            ).first()
            if not row:
                return None
            record = to_line_item(row).to_record()
            if "price_source" not in values and any(
                k in values and values[k] != record[k] for k in PRICING_FIELDS
            ):
                values["price_source"] = PriceSource.USER_EDITED.value
            record.update(values)
            line = BomLineItem.from_record(record)
            self._make_room(project_id, line.sort_order, keep_id=row.id)
            for name, value in line.to_record().items():
                setattr(row, name, value)
        else:
            if "sort_order" not in values:
                values["sort_order"] = self._next_sort_order(project_id)
            values.setdefault("price_source", PriceSource.USER_ADDED.value)
            line = BomLineItem.from_record(values)
            self._make_room(project_id, line.sort_order)
            row = _new_row(project_id, line)
            self.db.add(row)

        self.db.commit()
        self.db.refresh(row)
        return row

    def swap_material(self, project_id: int, component: str, material: str,
                      overrides: Optional[Dict[str, Any]] = None) -> Optional[List[BomItem]]:
        """Select a material for a component, pricing it from the catalog.

        Explicit overrides win over catalog defaults, which win over the
        existing row's values.
        """
        project = self._lock_project(project_id)
        if not project:
            return None

        overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        rows = self._rows(project_id)
        existing = next((r for r in rows if r.component == component), None)
        default = self.catalog.material_default(material)

        def pick(name, default_value, fallback):
            if name in overrides:
                return overrides[name]
            if default_value is not None:
                return default_value
            if existing is not None:
                return getattr(existing, name)
            return fallback

        record = {
            "category": existing.category if existing else "fabric",
            "component": component,
            "material": material,
            "composition": pick("composition", default.composition if default else None, ""),
            "specification": pick("specification", default.specification if default else None, None),
            "notes": existing.notes if existing else None,
            "unit_price": pick("unit_price", default.unit_price if default else None, 0.0),
            "unit": default.unit if default else (existing.unit if existing else "piece"),
            "consumption": pick("consumption", default.consumption if default else None, 1.0),
            "wastage": pick("wastage", default.wastage if default else None, 0.0),
            "price_source": PriceSource.USER_SELECTED.value,
            "sort_order": existing.sort_order if existing else self._next_sort_order(project_id),
        }
        line = BomLineItem.from_record(record)

        if existing is not None:
            for name, value in line.to_record().items():
                setattr(existing, name, value)
        else:
            self.db.add(_new_row(project_id, line))
        self.db.commit()
        logger.info(f"Project {project_id}: {component} -> {material}")
        return self._rows(project_id)

    def apply_confirmed_features(self, project_id: int,
                                 features: ConfirmedFeatures) -> Optional[List[BomItem]]:
        """Persist confirmed features and rebuild the BOM from template + cascade."""
        project = self._lock_project(project_id)
        if not project:
            return None

        project.confirmed_features = features.model_dump(exclude_none=True)
        sub_type = normalize_key(features.subType) or project.sub_type
        if sub_type:
            project.sub_type = sub_type

        baseline = resolve(project.category, project.sub_type, self.catalog)
        lines = apply_features(baseline, features, self.catalog)
        rows = self._write_back(project, lines)

        logger.info(f"Features cascade for project {project_id}: {len(baseline)} -> {len(rows)} items")
        publish_bom_rebuilt(project_id, len(rows), project.confirmed_features)
        return rows

    def _next_sort_order(self, project_id: int) -> int:
        rows = self._rows(project_id)
        return max((r.sort_order or 0 for r in rows), default=-1) + 1

    def _make_room(self, project_id: int, sort_order: int, keep_id: Optional[int] = None):
        """Shift rows at or after sort_order down one place when the slot is taken."""
        rows = [r for r in self._rows(project_id) if r.id != keep_id]
        if not any(r.sort_order == sort_order for r in rows):
            return
        for r in rows:
            if (r.sort_order or 0) >= sort_order:
                r.sort_order = (r.sort_order or 0) + 1

    # ---------- cost ----------

    def cost_breakdown(self, project_id: int, target_retail: Optional[float] = None,
                       settings: Optional[CostSettings] = None) -> Optional[Dict[str, Any]]:
        """Breakdown, MOQ comparison and settings for a project's current BOM."""
        project = self.get_project(project_id)
        if not project:
            return None

        settings = settings or project_settings(project)
        lines = [to_line_item(r) for r in self._rows(project_id)]
        breakdown = compute(lines, settings)

        result = {
            "breakdown": breakdown.model_dump(),
            "moq": moq_comparison(lines, settings),
            "tiers": tier_table(),
            "settings": settings.model_dump(),
        }
        if target_retail is not None:
            result["pricing"] = implied_margin_from_retail(
                breakdown.adjusted_landed_cost, target_retail, settings.markup_retail
            )
        return result

    def update_cost_settings(self, project_id: int, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Merge a partial settings update and return the new breakdown."""
        project = self._lock_project(project_id)
        if not project:
            return None

        values = project_settings(project).model_dump()
        values.update({k: v for k, v in patch.items() if k in SETTINGS_FIELDS and v is not None})
        settings = CostSettings.model_validate(values)

        for name, value in settings.model_dump().items():
            setattr(project, name, value)
        self.db.commit()

        result = self.cost_breakdown(project_id, settings=settings)
        publish_cost_settings_updated(
            project_id, result["settings"], result["breakdown"]["adjusted_landed_cost"]
        )
        return result

    def export_record(self, project_id: int) -> Optional[Dict[str, Any]]:
        """Flat record of project, BOM and breakdown for export documents."""
        project = self.get_project(project_id)
        if not project:
            return None

        rows = self.get_or_seed_bom(project_id)
        cost = self.cost_breakdown(project_id)
        return {
            "project": serialize_project(project),
            "bom": [serialize_bom_item(r) for r in rows],
            "cost_breakdown": cost["breakdown"],
            "catalog_version": self.catalog.version,
        }

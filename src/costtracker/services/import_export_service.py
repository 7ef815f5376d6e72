"""
Import/Export Service - JSON backup and restore of the local store.

Every table is exported as a flat list of rows keyed by its own id, so a
file written by export_all_to_json can be read back by
import_all_from_json without any id remapping.
"""

import json
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import CheckConstraint, Date, DateTime, UniqueConstraint
from sqlalchemy.orm import Session

from costtracker.models import (
    BatchProductItem,
    BatchVariantItem,
    InventoryItem,
    Label,
    Material,
    Packaging,
    Product,
    ProductionBatch,
    ProductVariant,
    PurchaseOrder,
    PurchaseOrderItem,
    Recipe,
    RecipeIngredient,
    Supplier,
    SupplierLabel,
    SupplierMaterial,
    SupplierPackaging,
)
from costtracker.models.base import BaseModel
from costtracker.services.database import session_scope
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.utils.constants import APP_VERSION, ERROR_REQUIRED_FIELD
from costtracker.utils.datetime_utils import utc_now
from costtracker.utils.validators import collect_errors, validate_non_negative_number

logger = get_service_logger(__name__)

EXPORT_FORMAT_VERSION = "1.0"
EXPORT_APPLICATION = "formulation-cost-tracker"

# (file key, model, {column: parent model}) in dependency order.
# Only real foreign keys are checked; supplier references may dangle.
ENTITY_ORDER: List[Tuple[str, Type[BaseModel], Dict[str, Type[BaseModel]]]] = [
    ("suppliers", Supplier, {}),
    ("materials", Material, {}),
    ("supplier_materials", SupplierMaterial, {"material_id": Material}),
    ("packaging", Packaging, {}),
    ("supplier_packaging", SupplierPackaging, {"packaging_id": Packaging}),
    ("labels", Label, {}),
    ("supplier_labels", SupplierLabel, {"label_id": Label}),
    ("recipes", Recipe, {}),
    ("recipe_ingredients", RecipeIngredient, {"recipe_id": Recipe}),
    ("products", Product, {}),
    ("product_variants", ProductVariant, {"product_id": Product}),
    ("production_batches", ProductionBatch, {}),
    ("batch_product_items", BatchProductItem, {"batch_id": ProductionBatch}),
    ("batch_variant_items", BatchVariantItem, {"product_item_id": BatchProductItem}),
    ("inventory_items", InventoryItem, {}),
    ("purchase_orders", PurchaseOrder, {}),
    ("purchase_order_items", PurchaseOrderItem, {"order_id": PurchaseOrder}),
]


class ImportVersionError(Exception):
    """Raised when import file has incompatible version."""

    pass


# ============================================================================
# Result Classes
# ============================================================================


class ImportResult:
    """Result of an import operation with per-entity tracking."""

    def __init__(self):
        self.total_records = 0
        self.successful = 0
        self.skipped = 0
        self.failed = 0
        self.errors = []
        self.entity_counts: Dict[str, Dict[str, int]] = {}

    def add_success(self, entity_type: str):
        """Record a successful import."""
        self.successful += 1
        self.total_records += 1
        self._ensure_entity(entity_type)
        self.entity_counts[entity_type]["imported"] += 1

    def add_skip(self, entity_type: str):
        """Record a record skipped because it already exists."""
        self.skipped += 1
        self.total_records += 1
        self._ensure_entity(entity_type)
        self.entity_counts[entity_type]["skipped"] += 1

    def add_error(self, entity_type: str, record_id: str, error: str):
        """Record a failed import."""
        self.failed += 1
        self.total_records += 1
        self._ensure_entity(entity_type)
        self.entity_counts[entity_type]["errors"] += 1
        self.errors.append({"record_type": entity_type, "record_id": record_id, "message": error})

    def _ensure_entity(self, entity_type: str):
        if entity_type not in self.entity_counts:
            self.entity_counts[entity_type] = {"imported": 0, "skipped": 0, "errors": 0}

    def get_summary(self) -> str:
        """Get a user-friendly summary string of the import results."""
        lines = ["Import Summary"]
        for entity, counts in self.entity_counts.items():
            parts = [f"{count} {label}" for label, count in counts.items() if count > 0]
            if parts:
                lines.append(f"  {entity}: {', '.join(parts)}")
        lines.extend([
            f"Total Records: {self.total_records}",
            f"Successful:    {self.successful}",
            f"Skipped:       {self.skipped}",
            f"Failed:        {self.failed}",
        ])
        for error in self.errors:
            lines.append(f"  - {error['record_type']} {error['record_id']}: {error['message']}")
        return "\n".join(lines)


class ExportResult:
    """Result of an export operation."""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self.record_count = 0
        self.entity_counts: Dict[str, int] = {}

    def add_entity_count(self, entity_type: str, count: int):
        """Add count for a specific entity type."""
        self.entity_counts[entity_type] = count
        self.record_count += count

    def get_summary(self) -> str:
        """Get a summary string of the export results."""
        lines = [f"Exported {self.record_count} records to {self.file_path}"]
        for entity, count in self.entity_counts.items():
            lines.append(f"  {entity}: {count}")
        return "\n".join(lines)


# ============================================================================
# Export
# ============================================================================


def export_all_to_json(file_path: str, session: Optional[Session] = None) -> ExportResult:
    """
    Export every table to a single JSON file.

    Args:
        file_path: Path to output JSON file
        session: Optional database session

    Returns:
        ExportResult with per-entity counts
    """
    if session is not None:
        return _export_all_impl(file_path, session)
    with session_scope() as session:
        return _export_all_impl(file_path, session)


def _export_all_impl(file_path: str, session: Session) -> ExportResult:
    result = ExportResult(file_path)
    export_data: Dict[str, Any] = {
        "version": EXPORT_FORMAT_VERSION,
        "application": EXPORT_APPLICATION,
        "app_version": APP_VERSION,
        "exported_at": utc_now().isoformat(),
    }
    for key, model, _parents in ENTITY_ORDER:
        rows = session.query(model).order_by(model.created_at, model.id).all()
        export_data[key] = [BaseModel.to_dict(row) for row in rows]
        result.add_entity_count(key, len(rows))

    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(export_data, f, indent=2, ensure_ascii=False)

    log_operation(logger, "export_all_to_json", "success", file_path=file_path, record_count=result.record_count)
    return result


# ============================================================================
# Import
# ============================================================================


def _column_values(model: Type[BaseModel], row: Dict[str, Any]) -> Dict[str, Any]:
    values = {}
    for column in model.__table__.columns:
        if column.name not in row:
            continue
        value = row[column.name]
        if isinstance(value, str) and isinstance(column.type, DateTime):
            value = datetime.fromisoformat(value)
        elif isinstance(value, str) and isinstance(column.type, Date):
            value = date.fromisoformat(value)
        values[column.name] = value
    return values


_NON_NEGATIVE_CHECK = re.compile(r"(\w+) >= 0")


def _row_errors(model: Type[BaseModel], values: Dict[str, Any], session: Session) -> List[str]:
    """Table constraints a row would break, checked before it is added."""
    table = model.__table__
    errors = [
        f"{column.name}: {ERROR_REQUIRED_FIELD}"
        for column in table.columns
        if not column.nullable
        and not column.primary_key
        and column.default is None
        and column.server_default is None
        and values.get(column.name) is None
    ]

    for constraint in table.constraints:
        if isinstance(constraint, CheckConstraint):
            match = _NON_NEGATIVE_CHECK.fullmatch(str(constraint.sqltext))
            if match and values.get(match.group(1)) is not None:
                errors += collect_errors(validate_non_negative_number(values[match.group(1)], match.group(1)))

    unique_sets = {(column.name,) for column in table.columns if column.unique}
    unique_sets.update(
        tuple(column.name for column in constraint.columns)
        for constraint in table.constraints
        if isinstance(constraint, UniqueConstraint)
    )
    for names in sorted(unique_sets):
        if any(values.get(name) is None for name in names):
            continue
        criteria = {name: values[name] for name in names}
        if session.query(model.id).filter_by(**criteria).first() is not None:
            described = ", ".join(f"{name} {value}" for name, value in criteria.items())
            errors.append(f"{described} already exists")
    return errors


def _clear_all_tables(session: Session) -> None:
    """Delete every row, children first."""
    for _key, model, _parents in reversed(ENTITY_ORDER):
        session.query(model).delete()
    session.flush()


def import_all_from_json(
    file_path: str, mode: str = "merge", session: Optional[Session] = None
) -> ImportResult:
    """
    Import all data from a JSON file written by export_all_to_json.

    Supports two import modes:
    - "merge": Add new records, skip ids that already exist (default)
    - "replace": Clear all existing data first, then import

    Records whose parent row is missing are reported as errors and skipped;
    the rest of the file still imports.

    Args:
        file_path: Path to JSON file
        mode: Import mode - "merge" (default) or "replace"
        session: Optional database session

    Returns:
        ImportResult with per-entity statistics

    Raises:
        ImportVersionError: If the file version is not supported
        ValueError: If mode is not "merge" or "replace"
    """
    if mode not in ("merge", "replace"):
        raise ValueError(f"Invalid import mode: {mode}. Must be 'merge' or 'replace'.")

    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    version = data.get("version", "unknown")
    if version != EXPORT_FORMAT_VERSION:
        raise ImportVersionError(
            f"Unsupported file version: {version}. Expected {EXPORT_FORMAT_VERSION}."
        )

    if session is not None:
        return _import_all_impl(data, mode, session)
    with session_scope() as session:
        return _import_all_impl(data, mode, session)


def _import_all_impl(data: Dict[str, Any], mode: str, session: Session) -> ImportResult:
    result = ImportResult()
    if mode == "replace":
        _clear_all_tables(session)

    for key, model, parents in ENTITY_ORDER:
        for row in data.get(key, []):
            record_id = row.get("id") or "unknown"
            if row.get("id") and session.get(model, row["id"]) is not None:
                result.add_skip(key)
                continue

            missing = [
                f"{column} {row.get(column)} not found"
                for column, parent in parents.items()
                if row.get(column) is not None and session.get(parent, row[column]) is None
            ]
            if missing:
                result.add_error(key, record_id, "; ".join(missing))
                continue

            try:
                values = _column_values(model, row)
            except ValueError as e:
                result.add_error(key, record_id, str(e))
                continue
            errors = _row_errors(model, values, session)
            if errors:
                result.add_error(key, record_id, "; ".join(errors))
                continue
            session.add(model(**values))
            result.add_success(key)
        session.flush()

    log_operation(
        logger,
        "import_all_from_json",
        "success" if not result.failed else "partial",
        mode=mode,
        imported=result.successful,
        skipped=result.skipped,
        failed=result.failed,
    )
    return result

"""Catalog Service - materials, packaging, labels and their supplier items.

Catalog items describe *what* can be bought; supplier items describe *who*
sells it and at what price. Recipe costing always prices from supplier
materials, so a price update here shows up in the next derivation.

Creating a catalog item whose name is close to an existing one (see
``find_similar_items``) succeeds but returns the near-duplicates under a
``warnings`` key and logs a warning. Similarity never blocks a write.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from sqlalchemy.orm import Session

from costtracker.models import (
    Label,
    Material,
    Packaging,
    SupplierLabel,
    SupplierMaterial,
    SupplierPackaging,
)
from costtracker.models.base import BaseModel
from costtracker.services.database import session_scope
from costtracker.services.exceptions import MaterialNotFound, ValidationError
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.services.pricing_service import calculate_unit_price
from costtracker.services.unit_converter import canonical_unit
from costtracker.utils.constants import AVAILABILITY_STATES
from costtracker.utils.text_utils import find_similar_items
from costtracker.utils.validators import (
    collect_errors,
    validate_choice,
    validate_non_negative_number,
    validate_required_string,
    validate_string_length,
)

logger = get_service_logger(__name__)


# ============================================================================
# Shared helpers
# ============================================================================


def _validate_unit(unit: str) -> tuple:
    if canonical_unit(unit) is None:
        return False, f"Unit: Unknown unit '{unit}'"
    return True, ""


def _create_catalog_item(
    model: Type[BaseModel], fields: Dict[str, Any], operation: str, session: Session
) -> Dict[str, Any]:
    existing = session.query(model.id, model.name).all()
    similar = find_similar_items(fields["name"], [{"id": i, "name": n} for i, n in existing])

    item = model(**{k: v for k, v in fields.items() if v is not None})
    session.add(item)
    session.flush()

    result = item.to_dict()
    result["warnings"] = [f"Similar name already exists: {s['name']}" for s in similar]
    if similar:
        log_operation(
            logger,
            operation,
            "similar_names",
            level=logging.WARNING,
            item_id=item.id,
            similar_names=[s["name"] for s in similar],
        )
    log_operation(logger, operation, "success", item_id=item.id)
    return result


def _require(model: Type[BaseModel], item_id: str, session: Session) -> BaseModel:
    item = session.query(model).filter(model.id == item_id).first()
    if item is None:
        raise MaterialNotFound(item_id)
    return item


def _validate_supplier_item(supplier_id: str, unit_price: Any, tax: Any, availability: str) -> List[str]:
    return collect_errors(
        validate_required_string(supplier_id, "Supplier"),
        validate_non_negative_number(unit_price, "Unit price"),
        validate_non_negative_number(tax, "Tax"),
        validate_choice(availability, AVAILABILITY_STATES, "Availability"),
    )


def _add_supplier_item(
    model: Type[BaseModel], fields: Dict[str, Any], operation: str, session: Session
) -> Dict[str, Any]:
    item = model(**{k: v for k, v in fields.items() if v is not None})
    session.add(item)
    session.flush()
    log_operation(logger, operation, "success", item_id=item.id, supplier_id=item.supplier_id)
    return item.to_dict()


def _list(model: Type[BaseModel], session: Session, **filters: Any) -> List[Dict[str, Any]]:
    query = session.query(model)
    for column, value in filters.items():
        if value is not None:
            query = query.filter(getattr(model, column) == value)
    order = model.name if hasattr(model, "name") else model.created_at
    return [item.to_dict() for item in query.order_by(order, model.id).all()]


# ============================================================================
# Materials
# ============================================================================


def create_material(
    name: str,
    category: str = "",
    unit_price: float = 0.0,
    tax: float = 0.0,
    notes: Optional[str] = None,
    material_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a material.

    Returns:
        Material dict with a ``warnings`` list of near-duplicate names

    Raises:
        ValidationError: If the name is empty or price/tax is negative
    """
    errors = collect_errors(
        validate_required_string(name, "Name"),
        validate_string_length(name, field_name="Name"),
        validate_non_negative_number(unit_price, "Unit price"),
        validate_non_negative_number(tax, "Tax"),
    )
    if errors:
        raise ValidationError(errors)

    fields = dict(
        id=material_id, name=name.strip(), category=category, unit_price=unit_price, tax=tax, notes=notes
    )
    if session is not None:
        return _create_catalog_item(Material, fields, "create_material", session)
    with session_scope() as session:
        return _create_catalog_item(Material, fields, "create_material", session)


def create_supplier_material(
    supplier_id: str,
    material_id: str,
    unit_price: Optional[float] = None,
    tax: float = 0.0,
    unit: str = "kg",
    moq: float = 0.0,
    lead_time: int = 0,
    availability: str = "in-stock",
    transportation_cost: Optional[float] = None,
    bulk_price: Optional[float] = None,
    quantity_for_bulk_price: Optional[float] = None,
    supplier_material_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a supplier's offer of a material.

    When ``unit_price`` is omitted it is derived from the bulk price.

    Raises:
        MaterialNotFound: If the material doesn't exist
        ValidationError: If prices are negative or the unit/availability is invalid
    """
    if unit_price is None:
        unit_price = calculate_unit_price(bulk_price or 0.0, quantity_for_bulk_price or 0.0)

    errors = _validate_supplier_item(supplier_id, unit_price, tax, availability)
    errors += collect_errors(
        _validate_unit(unit),
        validate_non_negative_number(moq, "MOQ"),
    )
    if errors:
        raise ValidationError(errors)

    fields = dict(
        id=supplier_material_id,
        supplier_id=supplier_id,
        material_id=material_id,
        unit=canonical_unit(unit),
        unit_price=unit_price,
        tax=tax,
        moq=moq,
        lead_time=lead_time,
        availability=availability,
        transportation_cost=transportation_cost,
        bulk_price=bulk_price,
        quantity_for_bulk_price=quantity_for_bulk_price,
    )
    if session is not None:
        return _create_supplier_material_impl(fields, session)
    with session_scope() as session:
        return _create_supplier_material_impl(fields, session)


def _create_supplier_material_impl(fields: Dict[str, Any], session: Session) -> Dict[str, Any]:
    _require(Material, fields["material_id"], session)
    return _add_supplier_item(SupplierMaterial, fields, "create_supplier_material", session)


def update_supplier_material_price(
    supplier_material_id: str,
    unit_price: float,
    tax: Optional[float] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Change a supplier material's price (and optionally its tax).

    Raises:
        MaterialNotFound: If the supplier material doesn't exist
        ValidationError: If price or tax is negative
    """
    errors = collect_errors(
        validate_non_negative_number(unit_price, "Unit price"),
        validate_non_negative_number(0 if tax is None else tax, "Tax"),
    )
    if errors:
        raise ValidationError(errors)

    if session is not None:
        return _update_price_impl(supplier_material_id, unit_price, tax, session)
    with session_scope() as session:
        return _update_price_impl(supplier_material_id, unit_price, tax, session)


def _update_price_impl(
    supplier_material_id: str, unit_price: float, tax: Optional[float], session: Session
) -> Dict[str, Any]:
    item = _require(SupplierMaterial, supplier_material_id, session)
    changes = {"unit_price": unit_price}
    if tax is not None:
        changes["tax"] = tax
    item.update_from_dict(changes)
    session.flush()
    log_operation(
        logger,
        "update_supplier_material_price",
        "success",
        supplier_material_id=supplier_material_id,
        unit_price=unit_price,
    )
    return item.to_dict()


def get_all_materials(session: Optional[Session] = None) -> List[Dict[str, Any]]:
    if session is not None:
        return _list(Material, session)
    with session_scope() as session:
        return _list(Material, session)


def get_supplier_materials(
    material_id: Optional[str] = None,
    supplier_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> List[Dict[str, Any]]:
    """Supplier materials, optionally filtered by material and/or supplier."""
    if session is not None:
        return _list(SupplierMaterial, session, material_id=material_id, supplier_id=supplier_id)
    with session_scope() as session:
        return _list(SupplierMaterial, session, material_id=material_id, supplier_id=supplier_id)


# ============================================================================
# Packaging
# ============================================================================


def create_packaging(
    name: str,
    type: str = "bottle",
    capacity: float = 0.0,
    unit: str = "mL",
    build_material: Optional[str] = None,
    packaging_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a packaging item.

    Raises:
        ValidationError: If the name is empty, capacity negative or unit unknown
    """
    errors = collect_errors(
        validate_required_string(name, "Name"),
        validate_string_length(name, field_name="Name"),
        validate_non_negative_number(capacity, "Capacity"),
        _validate_unit(unit),
    )
    if errors:
        raise ValidationError(errors)

    fields = dict(
        id=packaging_id,
        name=name.strip(),
        type=type,
        capacity=capacity,
        unit=canonical_unit(unit),
        build_material=build_material,
    )
    if session is not None:
        return _create_catalog_item(Packaging, fields, "create_packaging", session)
    with session_scope() as session:
        return _create_catalog_item(Packaging, fields, "create_packaging", session)


def create_supplier_packaging(
    supplier_id: str,
    packaging_id: str,
    unit_price: float,
    tax: float = 0.0,
    moq: float = 0.0,
    lead_time: int = 0,
    availability: str = "in-stock",
    transportation_cost: Optional[float] = None,
    supplier_packaging_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a supplier's per-piece offer of a packaging item.

    Raises:
        MaterialNotFound: If the packaging item doesn't exist
        ValidationError: If price or tax is negative
    """
    errors = _validate_supplier_item(supplier_id, unit_price, tax, availability)
    if errors:
        raise ValidationError(errors)

    fields = dict(
        id=supplier_packaging_id,
        supplier_id=supplier_id,
        packaging_id=packaging_id,
        unit_price=unit_price,
        tax=tax,
        moq=moq,
        lead_time=lead_time,
        availability=availability,
        transportation_cost=transportation_cost,
    )
    if session is not None:
        return _create_supplier_packaging_impl(fields, session)
    with session_scope() as session:
        return _create_supplier_packaging_impl(fields, session)


def _create_supplier_packaging_impl(fields: Dict[str, Any], session: Session) -> Dict[str, Any]:
    _require(Packaging, fields["packaging_id"], session)
    return _add_supplier_item(SupplierPackaging, fields, "create_supplier_packaging", session)


def get_all_packaging(session: Optional[Session] = None) -> List[Dict[str, Any]]:
    if session is not None:
        return _list(Packaging, session)
    with session_scope() as session:
        return _list(Packaging, session)


def get_supplier_packaging(
    packaging_id: Optional[str] = None, session: Optional[Session] = None
) -> List[Dict[str, Any]]:
    if session is not None:
        return _list(SupplierPackaging, session, packaging_id=packaging_id)
    with session_scope() as session:
        return _list(SupplierPackaging, session, packaging_id=packaging_id)


# ============================================================================
# Labels
# ============================================================================


def create_label(
    name: str,
    type: str = "label",
    size: Optional[str] = None,
    label_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a label.

    Raises:
        ValidationError: If the name is empty
    """
    errors = collect_errors(
        validate_required_string(name, "Name"),
        validate_string_length(name, field_name="Name"),
    )
    if errors:
        raise ValidationError(errors)

    fields = dict(id=label_id, name=name.strip(), type=type, size=size)
    if session is not None:
        return _create_catalog_item(Label, fields, "create_label", session)
    with session_scope() as session:
        return _create_catalog_item(Label, fields, "create_label", session)


def create_supplier_label(
    supplier_id: str,
    label_id: Optional[str],
    unit_price: float,
    tax: float = 0.0,
    moq: float = 0.0,
    lead_time: int = 0,
    availability: str = "in-stock",
    transportation_cost: Optional[float] = None,
    supplier_label_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a supplier's per-piece offer of a label.

    ``label_id`` may be None for one-off printed labels with no catalog entry.

    Raises:
        MaterialNotFound: If a label_id is given that doesn't exist
        ValidationError: If price or tax is negative
    """
    errors = _validate_supplier_item(supplier_id, unit_price, tax, availability)
    if errors:
        raise ValidationError(errors)

    fields = dict(
        id=supplier_label_id,
        supplier_id=supplier_id,
        label_id=label_id,
        unit_price=unit_price,
        tax=tax,
        moq=moq,
        lead_time=lead_time,
        availability=availability,
        transportation_cost=transportation_cost,
    )
    if session is not None:
        return _create_supplier_label_impl(fields, session)
    with session_scope() as session:
        return _create_supplier_label_impl(fields, session)


def _create_supplier_label_impl(fields: Dict[str, Any], session: Session) -> Dict[str, Any]:
    if fields["label_id"] is not None:
        _require(Label, fields["label_id"], session)
    return _add_supplier_item(SupplierLabel, fields, "create_supplier_label", session)


def get_all_labels(session: Optional[Session] = None) -> List[Dict[str, Any]]:
    if session is not None:
        return _list(Label, session)
    with session_scope() as session:
        return _list(Label, session)


def get_supplier_labels(
    label_id: Optional[str] = None, session: Optional[Session] = None
) -> List[Dict[str, Any]]:
    if session is not None:
        return _list(SupplierLabel, session, label_id=label_id)
    with session_scope() as session:
        return _list(SupplierLabel, session, label_id=label_id)

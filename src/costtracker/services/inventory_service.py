"""Inventory Service - on-hand stock of supplier items.

Each inventory record tracks one supplier item, identified by
(item_type, item_id) where item_type is supplierMaterial,
supplierPackaging or supplierLabel. Status is computed on read:

- critical: stock is zero or below
- low: stock is below the minimum stock level
- ok: otherwise

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly
- If session is None, create a new session via session_scope()
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from costtracker.models import InventoryItem
from costtracker.services.database import session_scope
from costtracker.services.dto import InventoryItemRecord
from costtracker.services.exceptions import InventoryItemNotFound, ValidationError
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.services.snapshots import InventorySnapshot
from costtracker.services.unit_converter import canonical_unit
from costtracker.utils.constants import INVENTORY_ITEM_TYPES
from costtracker.utils.validators import (
    collect_errors,
    validate_choice,
    validate_non_negative_number,
    validate_required_string,
)

logger = get_service_logger(__name__)


def calculate_inventory_status(current_stock: float, min_stock_level: float = 0.0) -> str:
    """
    Classify a stock level.

    Example:
        >>> calculate_inventory_status(0, 10)
        'critical'
        >>> calculate_inventory_status(5, 10)
        'low'
        >>> calculate_inventory_status(10, 10)
        'ok'
    """
    if current_stock <= 0:
        return "critical"
    if current_stock < min_stock_level:
        return "low"
    return "ok"


def _to_dict(item: InventoryItem) -> Dict[str, Any]:
    result = item.to_dict()
    result["status"] = calculate_inventory_status(item.current_stock, item.min_stock_level)
    return result


def _find(item_type: str, item_id: str, session: Session) -> Optional[InventoryItem]:
    return (
        session.query(InventoryItem)
        .filter(InventoryItem.item_type == item_type, InventoryItem.item_id == item_id)
        .first()
    )


def set_stock(
    item_type: str,
    item_id: str,
    current_stock: float,
    unit: str = "kg",
    min_stock_level: float = 0.0,
    item_name: str = "",
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create or replace the inventory record for a supplier item.

    Returns:
        Inventory item dict including its computed ``status``

    Raises:
        ValidationError: If the item type, unit or quantities are invalid
    """
    errors = collect_errors(
        validate_choice(item_type, INVENTORY_ITEM_TYPES, "Item type"),
        validate_required_string(item_id, "Item"),
        validate_non_negative_number(current_stock, "Current stock"),
        validate_non_negative_number(min_stock_level, "Minimum stock level"),
    )
    if canonical_unit(unit) is None:
        errors.append(f"Unit: Unknown unit '{unit}'")
    if errors:
        raise ValidationError(errors)

    fields = dict(
        item_type=item_type,
        item_id=item_id,
        current_stock=current_stock,
        unit=canonical_unit(unit),
        min_stock_level=min_stock_level,
        item_name=item_name,
    )
    if session is not None:
        return _set_stock_impl(fields, session)
    with session_scope() as session:
        return _set_stock_impl(fields, session)


def _set_stock_impl(fields: Dict[str, Any], session: Session) -> Dict[str, Any]:
    item = _find(fields["item_type"], fields["item_id"], session)
    if item is None:
        item = InventoryItem(**fields)
        session.add(item)
    else:
        item.update_from_dict(fields)
    session.flush()
    log_operation(
        logger,
        "set_stock",
        "success",
        item_type=item.item_type,
        item_id=item.item_id,
        current_stock=item.current_stock,
    )
    return _to_dict(item)


def adjust_stock(
    item_type: str,
    item_id: str,
    delta: float,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Add (or, with a negative delta, remove) stock for a tracked item.

    ``delta`` is in the inventory record's own unit.

    Raises:
        InventoryItemNotFound: If the item has no inventory record
        ValidationError: If the adjustment would take stock below zero
    """
    if session is not None:
        return _adjust_stock_impl(item_type, item_id, delta, session)
    with session_scope() as session:
        return _adjust_stock_impl(item_type, item_id, delta, session)


def _adjust_stock_impl(item_type: str, item_id: str, delta: float, session: Session) -> Dict[str, Any]:
    item = _find(item_type, item_id, session)
    if item is None:
        raise InventoryItemNotFound(f"{item_type}:{item_id}")

    new_stock = item.current_stock + delta
    if new_stock < 0:
        raise ValidationError(
            [f"Current stock: Adjustment of {delta:g} would leave {new_stock:g} {item.unit}"]
        )
    item.update_from_dict({"current_stock": new_stock})
    session.flush()

    status = calculate_inventory_status(item.current_stock, item.min_stock_level)
    log_operation(
        logger,
        "adjust_stock",
        "success",
        level=logging.WARNING if status != "ok" else logging.INFO,
        item_type=item_type,
        item_id=item_id,
        delta=delta,
        stock_status=status,
    )
    return _to_dict(item)


def get_inventory_item(inventory_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get an inventory item by its own ID.

    Raises:
        InventoryItemNotFound: If no inventory item has this ID
    """
    if session is not None:
        return _get_inventory_item_impl(inventory_id, session)
    with session_scope() as session:
        return _get_inventory_item_impl(inventory_id, session)


def _get_inventory_item_impl(inventory_id: str, session: Session) -> Dict[str, Any]:
    item = session.query(InventoryItem).filter(InventoryItem.id == inventory_id).first()
    if item is None:
        raise InventoryItemNotFound(inventory_id)
    return _to_dict(item)


def get_all_inventory(
    item_type: Optional[str] = None, session: Optional[Session] = None
) -> List[Dict[str, Any]]:
    """All inventory items with computed status, optionally filtered by type."""
    if session is not None:
        return _get_all_inventory_impl(item_type, session)
    with session_scope() as session:
        return _get_all_inventory_impl(item_type, session)


def _get_all_inventory_impl(item_type: Optional[str], session: Session) -> List[Dict[str, Any]]:
    query = session.query(InventoryItem)
    if item_type is not None:
        query = query.filter(InventoryItem.item_type == item_type)
    return [_to_dict(i) for i in query.order_by(InventoryItem.item_name, InventoryItem.id).all()]


def get_stock_alerts(session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """Inventory items whose status is low or critical, critical first."""
    items = get_all_inventory(session=session)
    alerts = [i for i in items if i["status"] != "ok"]
    return sorted(alerts, key=lambda i: 0 if i["status"] == "critical" else 1)


def build_inventory_snapshot(session: Optional[Session] = None) -> InventorySnapshot:
    """
    Read all inventory items into an InventorySnapshot for requirement checks.

    Raises:
        UnknownUnitError: If a stored inventory unit is not recognised
    """
    if session is not None:
        return _build_inventory_snapshot_impl(session)
    with session_scope() as session:
        return _build_inventory_snapshot_impl(session)


def _build_inventory_snapshot_impl(session: Session) -> InventorySnapshot:
    items = session.query(InventoryItem).order_by(InventoryItem.created_at, InventoryItem.id).all()
    return InventorySnapshot.from_items(InventoryItemRecord.from_dict(i.to_dict()) for i in items)

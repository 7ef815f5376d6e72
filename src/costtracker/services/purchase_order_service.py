"""Purchase Order Service - ordering supplier items and receiving them.

Orders move through submitted -> confirmed -> delivered. Receiving goods
adds the received quantity to inventory; once every line is fully
received the order is marked delivered.

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly
- If session is None, create a new session via session_scope()

Example Usage:
    >>> order = create_purchase_order(
    ...     supplier_id,
    ...     items=[{
    ...         "item_type": "material",
    ...         "item_id": supplier_material_id,
    ...         "item_name": "SLES",
    ...         "quantity": 50,
    ...         "unit": "kg",
    ...         "unit_price": 120,
    ...         "tax": 18,
    ...     }],
    ... )
    >>> calculate_order_total(order)
    7080.0
    >>> order = receive_items(order["id"])
    >>> order["status"]
    'delivered'
"""

from datetime import date
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from costtracker.models import InventoryItem, PurchaseOrder, PurchaseOrderItem, Supplier
from costtracker.services.database import session_scope
from costtracker.services.exceptions import (
    InvalidInputError,
    InvalidStatusTransition,
    PurchaseOrderNotFound,
    SupplierNotFound,
    ValidationError,
)
from costtracker.services.inventory_service import adjust_stock, set_stock
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.services.pricing_service import cost_for_quantity
from costtracker.services.unit_converter import (
    canonical_unit,
    from_base_unit,
    to_base_unit,
    units_compatible,
)
from costtracker.utils.constants import (
    ORDER_ITEM_TYPES,
    ORDER_STATUS_PROGRESSION,
    ORDER_STATUSES,
    REQUIREMENT_TO_INVENTORY_TYPE,
)
from costtracker.utils.datetime_utils import parse_iso_date
from costtracker.utils.validators import (
    collect_errors,
    validate_choice,
    validate_non_negative_number,
    validate_positive_number,
    validate_required_string,
)

logger = get_service_logger(__name__)

DateLike = Union[date, str, None]


def _as_date(value: DateLike) -> Optional[date]:
    if isinstance(value, str):
        return parse_iso_date(value)
    return value


def _validate_order_items(items: List[Dict[str, Any]]) -> List[str]:
    errors = []
    if not items:
        errors.append("Items: An order needs at least one item")
    for line in items:
        errors += collect_errors(
            validate_choice(line.get("item_type"), ORDER_ITEM_TYPES, "Item type"),
            validate_required_string(line.get("item_id"), "Item"),
            validate_positive_number(line.get("quantity"), "Quantity"),
            validate_non_negative_number(line.get("unit_price"), "Unit price"),
            validate_non_negative_number(line.get("tax", 0), "Tax"),
        )
        unit = line.get("unit", "kg")
        if canonical_unit(unit) is None:
            errors.append(f"Unit: Unknown unit '{unit}'")
    return errors


def _next_order_number(order_date: date, session: Session) -> str:
    prefix = f"PO-{order_date:%Y%m%d}-"
    taken = session.query(PurchaseOrder.order_number).filter(PurchaseOrder.order_number.like(f"{prefix}%"))
    suffixes = [number[len(prefix):] for (number,) in taken]
    highest = max((int(suffix) for suffix in suffixes if suffix.isdigit()), default=0)
    return f"{prefix}{highest + 1:03d}"


def create_purchase_order(
    supplier_id: str,
    items: List[Dict[str, Any]],
    order_date: DateLike = None,
    expected_delivery_date: DateLike = None,
    order_number: Optional[str] = None,
    notes: Optional[str] = None,
    order_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Place a purchase order with a supplier.

    Each line's total cost is the tax-inclusive cost of its quantity.

    Args:
        supplier_id: Supplier the order is placed with
        items: Dicts with item_type (material, packaging or label), item_id
            (the supplier item), item_name, quantity, unit, unit_price and tax
        order_date: Order date (defaults to today)
        expected_delivery_date: Optional promised delivery date
        order_number: Optional order number (generated as PO-YYYYMMDD-NNN)
        notes: Optional notes
        order_id: Optional explicit id
        session: Optional database session

    Returns:
        Order dict with nested items

    Raises:
        SupplierNotFound: If the supplier doesn't exist
        ValidationError: If any line is invalid or delivery precedes the order
    """
    items = list(items or [])
    errors = collect_errors(validate_required_string(supplier_id, "Supplier"))
    errors += _validate_order_items(items)
    placed = _as_date(order_date) or date.today()
    expected = _as_date(expected_delivery_date)
    if expected and expected < placed:
        errors.append("Expected delivery date: Must not be before the order date")
    if errors:
        raise ValidationError(errors)

    fields = dict(
        id=order_id,
        supplier_id=supplier_id,
        order_number=order_number,
        order_date=placed,
        expected_delivery_date=expected,
        notes=notes,
        status="submitted",
    )
    if session is not None:
        return _create_purchase_order_impl(fields, items, session)
    with session_scope() as session:
        return _create_purchase_order_impl(fields, items, session)


def _create_purchase_order_impl(
    fields: Dict[str, Any], items: List[Dict[str, Any]], session: Session
) -> Dict[str, Any]:
    if session.query(Supplier.id).filter(Supplier.id == fields["supplier_id"]).first() is None:
        raise SupplierNotFound(fields["supplier_id"])
    if not fields["order_number"]:
        fields["order_number"] = _next_order_number(fields["order_date"], session)

    order = PurchaseOrder(**{k: v for k, v in fields.items() if v is not None})
    for position, line in enumerate(items):
        tax = line.get("tax", 0.0)
        order.items.append(
            PurchaseOrderItem(
                item_type=line["item_type"],
                item_id=line["item_id"],
                item_name=line.get("item_name", ""),
                quantity=line["quantity"],
                unit=canonical_unit(line.get("unit", "kg")),
                unit_price=line["unit_price"],
                tax=tax,
                total_cost=cost_for_quantity(line["quantity"], line["unit_price"], tax),
                position=position,
            )
        )
    session.add(order)
    session.flush()

    log_operation(
        logger,
        "create_purchase_order",
        "success",
        order_id=order.id,
        order_number=order.order_number,
        supplier_id=order.supplier_id,
        item_count=len(items),
    )
    return order.to_dict(include_relationships=True)


def _get_order_or_raise(order_id: str, session: Session) -> PurchaseOrder:
    order = session.query(PurchaseOrder).filter(PurchaseOrder.id == order_id).first()
    if order is None:
        raise PurchaseOrderNotFound(order_id)
    return order


def get_purchase_order(order_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get a purchase order with its items.

    Raises:
        PurchaseOrderNotFound: If no order has this ID
    """
    if session is not None:
        return _get_order_or_raise(order_id, session).to_dict(include_relationships=True)
    with session_scope() as session:
        return _get_order_or_raise(order_id, session).to_dict(include_relationships=True)


def get_all_purchase_orders(
    status: Optional[str] = None,
    supplier_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> List[Dict[str, Any]]:
    """All purchase orders, newest first, optionally filtered."""
    if session is not None:
        return _get_all_purchase_orders_impl(status, supplier_id, session)
    with session_scope() as session:
        return _get_all_purchase_orders_impl(status, supplier_id, session)


def _get_all_purchase_orders_impl(
    status: Optional[str], supplier_id: Optional[str], session: Session
) -> List[Dict[str, Any]]:
    query = session.query(PurchaseOrder)
    if status is not None:
        query = query.filter(PurchaseOrder.status == status)
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    query = query.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.order_number.desc())
    return [o.to_dict(include_relationships=True) for o in query.all()]


def update_order_status(order_id: str, status: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Move an order to the next status.

    Raises:
        PurchaseOrderNotFound: If no order has this ID
        ValidationError: If the status is not an order status
        InvalidStatusTransition: If the order can't move to this status
    """
    errors = collect_errors(validate_choice(status, ORDER_STATUSES, "Status"))
    if errors:
        raise ValidationError(errors)

    if session is not None:
        return _update_order_status_impl(order_id, status, session)
    with session_scope() as session:
        return _update_order_status_impl(order_id, status, session)


def _update_order_status_impl(order_id: str, status: str, session: Session) -> Dict[str, Any]:
    order = _get_order_or_raise(order_id, session)
    if status not in ORDER_STATUS_PROGRESSION.get(order.status, []):
        raise InvalidStatusTransition("purchase order", order.status, status)

    previous = order.status
    order.status = status
    if status == "delivered" and order.delivered_date is None:
        order.delivered_date = date.today()
    session.flush()
    log_operation(
        logger, "update_order_status", "success", order_id=order_id, previous_status=previous, status=status
    )
    return order.to_dict(include_relationships=True)


def receive_items(
    order_id: str,
    received: Optional[Dict[str, float]] = None,
    received_date: DateLike = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Record goods received against an order and add them to inventory.

    Args:
        order_id: Purchase order ID
        received: Mapping of order item id -> quantity received now, in the
            line's unit. When omitted every outstanding quantity is received.
        received_date: Date used if the order becomes delivered (defaults to today)
        session: Optional database session

    Returns:
        Updated order dict

    Raises:
        PurchaseOrderNotFound: If no order has this ID
        ValidationError: If a line is unknown, the order is already
            delivered, more than the outstanding quantity is received, or the
            line unit cannot convert to the unit the item is stocked in
        InvalidInputError: If a received quantity is missing or negative
    """
    if session is not None:
        return _receive_items_impl(order_id, received, _as_date(received_date), session)
    with session_scope() as session:
        return _receive_items_impl(order_id, received, _as_date(received_date), session)


def _receive_items_impl(
    order_id: str,
    received: Optional[Dict[str, float]],
    received_date: Optional[date],
    session: Session,
) -> Dict[str, Any]:
    order = _get_order_or_raise(order_id, session)
    if order.status == "delivered":
        raise ValidationError([f"Status: Order {order.order_number} is already delivered"])

    lines = {line.id: line for line in order.items}
    if received is None:
        received = {line.id: line.quantity - line.quantity_received for line in order.items}

    quantity_errors = []
    for quantity in received.values():
        quantity_errors += collect_errors(validate_non_negative_number(quantity, "Quantity received"))
    if quantity_errors:
        raise InvalidInputError(quantity_errors)
    received = {line_id: float(quantity) for line_id, quantity in received.items()}

    errors = []
    for line_id, quantity in received.items():
        line = lines.get(line_id)
        if line is None:
            errors.append(f"Item: Order item {line_id} is not on order {order.order_number}")
            continue
        stock = _find_stock(line, session)
        if quantity > 0 and stock is not None and not units_compatible(line.unit, stock.unit):
            errors.append(
                f"Unit: Cannot receive {line.unit} of {line.item_name or line.item_id} into stock kept in {stock.unit}"
            )
        outstanding = line.quantity - line.quantity_received
        if quantity > outstanding + 1e-9:
            label = line.item_name or line.item_id
            errors.append(
                f"Quantity received: {quantity:g} {line.unit} exceeds the {outstanding:g} outstanding for {label}"
            )
    if errors:
        raise ValidationError(errors)

    for line_id, quantity in received.items():
        if quantity <= 0:
            continue
        line = lines[line_id]
        line.quantity_received += quantity
        _add_to_inventory(line, quantity, session)

    if all(line.quantity_received >= line.quantity for line in order.items):
        order.status = "delivered"
        order.delivered_date = received_date or date.today()
    session.flush()

    log_operation(
        logger,
        "receive_items",
        "success",
        order_id=order_id,
        line_count=len(received),
        status=order.status,
    )
    return order.to_dict(include_relationships=True)


def _find_stock(line: PurchaseOrderItem, session: Session) -> Optional[InventoryItem]:
    item_type = REQUIREMENT_TO_INVENTORY_TYPE[line.item_type]
    return (
        session.query(InventoryItem)
        .filter(InventoryItem.item_type == item_type, InventoryItem.item_id == line.item_id)
        .first()
    )


def _add_to_inventory(line: PurchaseOrderItem, quantity: float, session: Session) -> None:
    item_type = REQUIREMENT_TO_INVENTORY_TYPE[line.item_type]
    existing = _find_stock(line, session)
    if existing is None:
        set_stock(item_type, line.item_id, quantity, unit=line.unit, item_name=line.item_name, session=session)
    else:
        delta = from_base_unit(to_base_unit(quantity, line.unit), existing.unit)
        adjust_stock(item_type, line.item_id, delta, session=session)


def calculate_order_total(order: Dict[str, Any]) -> float:
    """Sum of the line totals of an order dict."""
    return sum(item.get("total_cost", 0.0) for item in order.get("items", []))


def calculate_order_completion(order: Dict[str, Any]) -> float:
    """
    Percentage of ordered quantity received so far.

    Example:
        >>> calculate_order_completion({"items": [
        ...     {"quantity": 10, "quantity_received": 10},
        ...     {"quantity": 30, "quantity_received": 0},
        ... ]})
        25.0
    """
    items = order.get("items", [])
    ordered = sum(item.get("quantity", 0.0) for item in items)
    if ordered <= 0:
        return 0.0
    received = sum(min(item.get("quantity_received", 0.0), item.get("quantity", 0.0)) for item in items)
    return received / ordered * 100


def is_order_overdue(order: Dict[str, Any], today: Optional[date] = None) -> bool:
    """True when an undelivered order is past its expected delivery date."""
    if order.get("status") == "delivered":
        return False
    expected = _as_date(order.get("expected_delivery_date"))
    if expected is None:
        return False
    return (today or date.today()) > expected

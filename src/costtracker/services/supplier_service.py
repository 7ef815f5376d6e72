"""Supplier Service - CRUD operations for supplier management.

All functions follow the session pattern: pass ``session`` to join an
existing transaction, or omit it to run in a new ``session_scope()``.

Key Features:
- Create/Read suppliers with validation
- Soft delete via deactivate (supplier items keep their references)
- Hard delete never touches supplier items; their supplier then shows as
  "Unknown Supplier"
- Active supplier filtering

Example Usage:
    >>> from costtracker.services.supplier_service import create_supplier, get_all_suppliers
    >>>
    >>> supplier = create_supplier(name="Acme Chemicals", lead_time=5)
    >>> supplier["name"]
    'Acme Chemicals'
    >>> [s["name"] for s in get_all_suppliers()]
    ['Acme Chemicals']
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from costtracker.models import Supplier
from costtracker.services.database import session_scope
from costtracker.services.exceptions import SupplierNotFound, ValidationError
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.utils.validators import (
    collect_errors,
    validate_non_negative_number,
    validate_required_string,
    validate_string_length,
)

logger = get_service_logger(__name__)


def create_supplier(
    name: str,
    contact_person: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    address: Optional[str] = None,
    rating: float = 0.0,
    lead_time: int = 0,
    notes: Optional[str] = None,
    supplier_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a new supplier.

    Args:
        name: Supplier name (required)
        contact_person: Optional contact name
        email: Optional email
        phone: Optional phone
        address: Optional address
        rating: Rating 0-5
        lead_time: Typical lead time in days
        notes: Optional notes
        supplier_id: Optional explicit id (generated when omitted)
        session: Optional database session for transactional atomicity

    Returns:
        Dict[str, Any]: Created supplier as dictionary

    Raises:
        ValidationError: If the name is empty or numbers are negative
    """
    errors = collect_errors(
        validate_required_string(name, "Name"),
        validate_string_length(name, field_name="Name"),
        validate_non_negative_number(rating, "Rating"),
        validate_non_negative_number(lead_time, "Lead time"),
    )
    if errors:
        raise ValidationError(errors)

    fields = dict(
        id=supplier_id,
        name=name.strip(),
        contact_person=contact_person,
        email=email,
        phone=phone,
        address=address,
        rating=rating,
        lead_time=lead_time,
        notes=notes,
    )
    if session is not None:
        return _create_supplier_impl(fields, session)
    with session_scope() as session:
        return _create_supplier_impl(fields, session)


def _create_supplier_impl(fields: Dict[str, Any], session: Session) -> Dict[str, Any]:
    supplier = Supplier(**{k: v for k, v in fields.items() if v is not None})
    session.add(supplier)
    session.flush()
    log_operation(logger, "create_supplier", "success", supplier_id=supplier.id)
    return supplier.to_dict()


def get_supplier(supplier_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get supplier by ID.

    Raises:
        SupplierNotFound: If no supplier has this ID
    """
    if session is not None:
        return _get_supplier_impl(supplier_id, session)
    with session_scope() as session:
        return _get_supplier_impl(supplier_id, session)


def _get_supplier_impl(supplier_id: str, session: Session) -> Dict[str, Any]:
    supplier = session.query(Supplier).filter(Supplier.id == supplier_id).first()
    if supplier is None:
        raise SupplierNotFound(supplier_id)
    return supplier.to_dict()


def get_all_suppliers(
    include_inactive: bool = False,
    session: Optional[Session] = None,
) -> List[Dict[str, Any]]:
    """Get all suppliers sorted by name, active ones only unless asked otherwise."""
    if session is not None:
        return _get_all_suppliers_impl(include_inactive, session)
    with session_scope() as session:
        return _get_all_suppliers_impl(include_inactive, session)


def _get_all_suppliers_impl(include_inactive: bool, session: Session) -> List[Dict[str, Any]]:
    query = session.query(Supplier)
    if not include_inactive:
        query = query.filter(Supplier.is_active.is_(True))
    return [s.to_dict() for s in query.order_by(Supplier.name).all()]


def deactivate_supplier(supplier_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Soft delete a supplier.

    Raises:
        SupplierNotFound: If no supplier has this ID
    """
    if session is not None:
        return _set_active_impl(supplier_id, False, session)
    with session_scope() as session:
        return _set_active_impl(supplier_id, False, session)


def reactivate_supplier(supplier_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Undo a soft delete."""
    if session is not None:
        return _set_active_impl(supplier_id, True, session)
    with session_scope() as session:
        return _set_active_impl(supplier_id, True, session)


def _set_active_impl(supplier_id: str, active: bool, session: Session) -> Dict[str, Any]:
    supplier = session.query(Supplier).filter(Supplier.id == supplier_id).first()
    if supplier is None:
        raise SupplierNotFound(supplier_id)
    supplier.is_active = active
    session.flush()
    log_operation(
        logger,
        "reactivate_supplier" if active else "deactivate_supplier",
        "success",
        supplier_id=supplier_id,
    )
    return supplier.to_dict()


def delete_supplier(supplier_id: str, session: Optional[Session] = None) -> None:
    """Permanently delete a supplier.

    Supplier materials, packaging and labels that reference the supplier
    are left in place.

    Raises:
        SupplierNotFound: If no supplier has this ID
    """
    if session is not None:
        return _delete_supplier_impl(supplier_id, session)
    with session_scope() as session:
        return _delete_supplier_impl(supplier_id, session)


def _delete_supplier_impl(supplier_id: str, session: Session) -> None:
    supplier = session.query(Supplier).filter(Supplier.id == supplier_id).first()
    if supplier is None:
        raise SupplierNotFound(supplier_id)
    session.delete(supplier)
    session.flush()
    log_operation(logger, "delete_supplier", "success", supplier_id=supplier_id)

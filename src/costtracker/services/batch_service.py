"""Batch Service - production batch planning.

A batch lists products and, per product, the total fill quantity of each
variant to produce. Requirements and costs are derived from a batch by
batch_requirements_service and product_cost_service; nothing derived is
stored on the batch.

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly
- If session is None, create a new session via session_scope()
"""

from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from costtracker.models import BatchProductItem, BatchVariantItem, ProductionBatch
from costtracker.services.database import session_scope
from costtracker.services.exceptions import BatchNotFound, ValidationError
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.services.unit_converter import canonical_unit
from costtracker.utils.constants import BATCH_STATUSES
from costtracker.utils.datetime_utils import parse_iso_date
from costtracker.utils.validators import (
    collect_errors,
    validate_choice,
    validate_non_negative_number,
    validate_required_string,
)

logger = get_service_logger(__name__)

DateLike = Union[date, str, None]


def _as_date(value: DateLike) -> Optional[date]:
    if isinstance(value, str):
        return parse_iso_date(value)
    return value


def _validate_items(items: List[Dict[str, Any]]) -> List[str]:
    errors = []
    for product_item in items:
        errors += collect_errors(validate_required_string(product_item.get("product_id"), "Product"))
        for variant_item in product_item.get("variants", []):
            errors += collect_errors(
                validate_required_string(variant_item.get("variant_id"), "Variant"),
                validate_non_negative_number(variant_item.get("total_fill_quantity"), "Total fill quantity"),
            )
            unit = variant_item.get("fill_unit", "kg")
            if canonical_unit(unit) is None:
                errors.append(f"Fill unit: Unknown unit '{unit}'")
    return errors


def create_batch(
    batch_name: str,
    items: Optional[Iterable[Dict[str, Any]]] = None,
    start_date: DateLike = None,
    end_date: DateLike = None,
    status: str = "draft",
    description: Optional[str] = None,
    batch_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a production batch.

    Args:
        batch_name: Batch name (required)
        items: Dicts with product_id and variants, each variant a dict with
            variant_id, total_fill_quantity and fill_unit
        start_date: Optional start date (date or ISO string)
        end_date: Optional end date (date or ISO string)
        status: One of the batch statuses
        description: Optional description
        batch_id: Optional explicit id
        session: Optional database session

    Returns:
        Batch dict with nested items

    Raises:
        ValidationError: If the name, status or any item is invalid

    Example:
        >>> batch = create_batch(
        ...     "March run",
        ...     items=[{
        ...         "product_id": product_id,
        ...         "variants": [{"variant_id": v500, "total_fill_quantity": 50, "fill_unit": "L"}],
        ...     }],
        ... )
    """
    items = list(items or [])
    errors = collect_errors(
        validate_required_string(batch_name, "Batch name"),
        validate_choice(status, BATCH_STATUSES, "Status"),
    )
    errors += _validate_items(items)
    start, end = _as_date(start_date), _as_date(end_date)
    if start and end and end < start:
        errors.append("End date: Must not be before the start date")
    if errors:
        raise ValidationError(errors)

    fields = dict(
        id=batch_id,
        batch_name=batch_name.strip(),
        description=description,
        start_date=start,
        end_date=end,
        status=status,
    )
    if session is not None:
        return _create_batch_impl(fields, items, session)
    with session_scope() as session:
        return _create_batch_impl(fields, items, session)


def _create_batch_impl(
    fields: Dict[str, Any], items: List[Dict[str, Any]], session: Session
) -> Dict[str, Any]:
    batch = ProductionBatch(**{k: v for k, v in fields.items() if v is not None})
    for position, product_item in enumerate(items):
        row = BatchProductItem(product_id=product_item["product_id"], position=position)
        for variant_position, variant_item in enumerate(product_item.get("variants", [])):
            row.variants.append(
                BatchVariantItem(
                    variant_id=variant_item["variant_id"],
                    total_fill_quantity=variant_item["total_fill_quantity"],
                    fill_unit=canonical_unit(variant_item.get("fill_unit", "kg")),
                    position=variant_position,
                )
            )
        batch.items.append(row)
    session.add(batch)
    session.flush()
    log_operation(logger, "create_batch", "success", batch_id=batch.id, product_count=len(items))
    return batch.to_dict(include_relationships=True)


def _get_batch_or_raise(batch_id: str, session: Session) -> ProductionBatch:
    batch = session.query(ProductionBatch).filter(ProductionBatch.id == batch_id).first()
    if batch is None:
        raise BatchNotFound(batch_id)
    return batch


def get_batch(batch_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get a batch with its items.

    Raises:
        BatchNotFound: If no batch has this ID
    """
    if session is not None:
        return _get_batch_or_raise(batch_id, session).to_dict(include_relationships=True)
    with session_scope() as session:
        return _get_batch_or_raise(batch_id, session).to_dict(include_relationships=True)


def get_all_batches(status: Optional[str] = None, session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """All batches, newest start date first, optionally filtered by status."""
    if session is not None:
        return _get_all_batches_impl(status, session)
    with session_scope() as session:
        return _get_all_batches_impl(status, session)


def _get_all_batches_impl(status: Optional[str], session: Session) -> List[Dict[str, Any]]:
    query = session.query(ProductionBatch)
    if status is not None:
        query = query.filter(ProductionBatch.status == status)
    query = query.order_by(ProductionBatch.start_date.desc(), ProductionBatch.batch_name)
    return [b.to_dict(include_relationships=True) for b in query.all()]


def update_batch_status(batch_id: str, status: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Set a batch's status.

    Raises:
        BatchNotFound: If no batch has this ID
        ValidationError: If the status is not a batch status
    """
    errors = collect_errors(validate_choice(status, BATCH_STATUSES, "Status"))
    if errors:
        raise ValidationError(errors)

    if session is not None:
        return _update_batch_status_impl(batch_id, status, session)
    with session_scope() as session:
        return _update_batch_status_impl(batch_id, status, session)


def _update_batch_status_impl(batch_id: str, status: str, session: Session) -> Dict[str, Any]:
    batch = _get_batch_or_raise(batch_id, session)
    previous = batch.status
    batch.update_from_dict({"status": status})
    session.flush()
    log_operation(
        logger, "update_batch_status", "success", batch_id=batch_id, previous_status=previous, status=status
    )
    return batch.to_dict()


def delete_batch(batch_id: str, session: Optional[Session] = None) -> None:
    """Delete a batch and its items.

    Raises:
        BatchNotFound: If no batch has this ID
    """
    if session is not None:
        return _delete_batch_impl(batch_id, session)
    with session_scope() as session:
        return _delete_batch_impl(batch_id, session)


def _delete_batch_impl(batch_id: str, session: Session) -> None:
    batch = _get_batch_or_raise(batch_id, session)
    session.delete(batch)
    session.flush()
    log_operation(logger, "delete_batch", "success", batch_id=batch_id)

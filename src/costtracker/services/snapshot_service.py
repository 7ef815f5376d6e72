"""
Snapshot Service - builds engine snapshots from the local store.

The cost engine only ever sees dto records. This service reads the ORM
tables once and hands back a CatalogSnapshot or a batch record, so each
derivation works on a consistent, detached view. Inventory snapshots are
built by inventory_service.build_inventory_snapshot.

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly
- If session is None, create a new session via session_scope()
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from costtracker.models import (
    Label,
    Material,
    Packaging,
    Product,
    ProductionBatch,
    ProductVariant,
    Recipe,
    Supplier,
    SupplierLabel,
    SupplierMaterial,
    SupplierPackaging,
)
from costtracker.services.database import session_scope
from costtracker.services.dto import (
    LabelRecord,
    MaterialRecord,
    PackagingRecord,
    ProductionBatchRecord,
    ProductRecord,
    ProductVariantRecord,
    RecipeRecord,
    SupplierLabelRecord,
    SupplierMaterialRecord,
    SupplierPackagingRecord,
    SupplierRecord,
)
from costtracker.services.exceptions import BatchNotFound
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.services.snapshots import CatalogSnapshot

logger = get_service_logger(__name__)


def load_catalog_snapshot(session: Optional[Session] = None) -> CatalogSnapshot:
    """
    Read every catalog table into a CatalogSnapshot.

    Returns:
        CatalogSnapshot with suppliers, catalog items, supplier items,
        recipes (with ordered ingredients), products and variants
    """
    if session is not None:
        return _load_catalog_snapshot_impl(session)
    with session_scope() as session:
        return _load_catalog_snapshot_impl(session)


def _load_catalog_snapshot_impl(session: Session) -> CatalogSnapshot:
    def rows(model):
        return session.query(model).order_by(model.created_at, model.id).all()

    snapshot = CatalogSnapshot(
        suppliers=[SupplierRecord.from_dict(r.to_dict()) for r in rows(Supplier)],
        materials=[MaterialRecord.from_dict(r.to_dict()) for r in rows(Material)],
        supplier_materials=[SupplierMaterialRecord.from_dict(r.to_dict()) for r in rows(SupplierMaterial)],
        packaging=[PackagingRecord.from_dict(r.to_dict()) for r in rows(Packaging)],
        supplier_packaging=[SupplierPackagingRecord.from_dict(r.to_dict()) for r in rows(SupplierPackaging)],
        labels=[LabelRecord.from_dict(r.to_dict()) for r in rows(Label)],
        supplier_labels=[SupplierLabelRecord.from_dict(r.to_dict()) for r in rows(SupplierLabel)],
        recipes=[RecipeRecord.from_dict(r.to_dict(include_relationships=True)) for r in rows(Recipe)],
        products=[ProductRecord.from_dict(r.to_dict()) for r in rows(Product)],
        variants=[ProductVariantRecord.from_dict(r.to_dict()) for r in rows(ProductVariant)],
    )

    log_operation(
        logger,
        operation="load_catalog_snapshot",
        outcome="success",
        level=logging.DEBUG,
        recipe_count=len(snapshot.recipes),
        supplier_material_count=len(snapshot.supplier_materials),
    )
    return snapshot


def load_batch_record(batch_id: str, session: Optional[Session] = None) -> ProductionBatchRecord:
    """
    Read one production batch with its product and variant items.

    Raises:
        BatchNotFound: If no batch has this ID
    """
    if session is not None:
        return _load_batch_record_impl(batch_id, session)
    with session_scope() as session:
        return _load_batch_record_impl(batch_id, session)


def _load_batch_record_impl(batch_id: str, session: Session) -> ProductionBatchRecord:
    batch = session.query(ProductionBatch).filter(ProductionBatch.id == batch_id).first()
    if batch is None:
        raise BatchNotFound(batch_id)
    return ProductionBatchRecord.from_dict(batch.to_dict(include_relationships=True))

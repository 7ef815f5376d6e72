"""Pytest configuration and shared fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker

from costtracker.models import Base
from costtracker.services.dto import (
    BatchProductItemRecord,
    BatchVariantItemRecord,
    LabelRecord,
    MaterialRecord,
    PackagingRecord,
    ProductionBatchRecord,
    ProductRecord,
    ProductVariantRecord,
    RecipeIngredientRecord,
    RecipeRecord,
    SupplierLabelRecord,
    SupplierMaterialRecord,
    SupplierPackagingRecord,
    SupplierRecord,
)
from costtracker.services.snapshots import CatalogSnapshot


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import costtracker.services.database as db_module

    original_get_session_factory = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    db_module.get_session_factory = original_get_session_factory


@pytest.fixture
def floor_cleaner_catalog():
    """Catalog with the Floor Cleaner recipe and its 500 mL variant.

    - Material A from Acme at 50/kg + 18% tax (0.6 kg per kg of output)
    - Material B from Acme at 30/kg + 18% tax (0.4 kg per kg of output)
    - Material A also offered by Bottle Co at 45/kg + 18% tax
    - 500 mL bottle from Bottle Co at 10 + 18% tax
    - Front label from Bottle Co at 2 + 18% tax
    - Variant sells at 50 per unit
    """
    return CatalogSnapshot.from_records(
        suppliers=[
            SupplierRecord(id="sup-acme", name="Acme Chemicals"),
            SupplierRecord(id="sup-bottle", name="Bottle Co"),
        ],
        materials=[
            MaterialRecord(id="mat-a", name="Material A", category="Acids"),
            MaterialRecord(id="mat-b", name="Material B", category="Bases"),
        ],
        supplier_materials=[
            SupplierMaterialRecord(id="sm-a", supplier_id="sup-acme", material_id="mat-a", unit_price=50.0, tax=18.0),
            SupplierMaterialRecord(id="sm-b", supplier_id="sup-acme", material_id="mat-b", unit_price=30.0, tax=18.0),
            SupplierMaterialRecord(
                id="sm-a-alt", supplier_id="sup-bottle", material_id="mat-a", unit_price=45.0, tax=18.0
            ),
        ],
        packaging=[PackagingRecord(id="pkg-500", name="500 mL Bottle", capacity=500, unit="mL")],
        supplier_packaging=[
            SupplierPackagingRecord(
                id="sp-500", supplier_id="sup-bottle", packaging_id="pkg-500", unit_price=10.0, tax=18.0
            )
        ],
        labels=[LabelRecord(id="lbl-front", name="Front Label")],
        supplier_labels=[
            SupplierLabelRecord(
                id="sl-front", supplier_id="sup-bottle", label_id="lbl-front", unit_price=2.0, tax=18.0
            )
        ],
        recipes=[RecipeRecord(id="rec-floor", name="Floor Cleaner", status="active")],
        recipe_ingredients=[
            RecipeIngredientRecord(id="ing-a", recipe_id="rec-floor", supplier_material_id="sm-a", quantity=0.6),
            RecipeIngredientRecord(id="ing-b", recipe_id="rec-floor", supplier_material_id="sm-b", quantity=0.4),
        ],
        products=[ProductRecord(id="prod-floor", name="Floor Cleaner", recipe_id="rec-floor")],
        variants=[
            ProductVariantRecord(
                id="var-500",
                product_id="prod-floor",
                name="500 mL Bottle",
                fill_quantity=500,
                fill_unit="mL",
                packaging_selection_id="sp-500",
                front_label_selection_id="sl-front",
                selling_price_per_unit=50.0,
                sku="FC-500",
            )
        ],
    )


@pytest.fixture
def floor_cleaner_batch():
    """A batch filling 50 L of the 500 mL Floor Cleaner variant (100 units)."""
    return ProductionBatchRecord(
        id="batch-1",
        batch_name="March run",
        items=(
            BatchProductItemRecord(
                product_id="prod-floor",
                variants=(BatchVariantItemRecord(variant_id="var-500", total_fill_quantity=50, fill_unit="L"),),
            ),
        ),
    )


@pytest.fixture
def seeded_db(test_db):
    """The Floor Cleaner catalog and March batch written to the test database."""
    from costtracker.services import (
        batch_service,
        catalog_service,
        product_service,
        recipe_service,
        supplier_service,
    )

    supplier_service.create_supplier("Acme Chemicals", supplier_id="sup-acme")
    supplier_service.create_supplier("Bottle Co", supplier_id="sup-bottle")

    catalog_service.create_material("Material A", category="Acids", material_id="mat-a")
    catalog_service.create_material("Material B", category="Bases", material_id="mat-b")
    catalog_service.create_supplier_material(
        "sup-acme", "mat-a", unit_price=50.0, tax=18.0, supplier_material_id="sm-a"
    )
    catalog_service.create_supplier_material(
        "sup-acme", "mat-b", unit_price=30.0, tax=18.0, supplier_material_id="sm-b"
    )
    catalog_service.create_supplier_material(
        "sup-bottle", "mat-a", unit_price=45.0, tax=18.0, supplier_material_id="sm-a-alt"
    )
    catalog_service.create_packaging("500 mL Bottle", capacity=500, unit="mL", packaging_id="pkg-500")
    catalog_service.create_supplier_packaging(
        "sup-bottle", "pkg-500", unit_price=10.0, tax=18.0, supplier_packaging_id="sp-500"
    )
    catalog_service.create_label("Front Label", label_id="lbl-front")
    catalog_service.create_supplier_label(
        "sup-bottle", "lbl-front", unit_price=2.0, tax=18.0, supplier_label_id="sl-front"
    )

    recipe_service.create_recipe(
        "Floor Cleaner",
        ingredients=[
            {"id": "ing-a", "supplier_material_id": "sm-a", "quantity": 0.6},
            {"id": "ing-b", "supplier_material_id": "sm-b", "quantity": 0.4},
        ],
        status="active",
        recipe_id="rec-floor",
    )
    product_service.create_product("Floor Cleaner", "rec-floor", product_id="prod-floor")
    product_service.create_variant(
        "prod-floor",
        "500 mL Bottle",
        500,
        "mL",
        packaging_selection_id="sp-500",
        front_label_selection_id="sl-front",
        selling_price_per_unit=50.0,
        sku="FC-500",
        variant_id="var-500",
    )
    batch_service.create_batch(
        "March run",
        items=[
            {
                "product_id": "prod-floor",
                "variants": [{"variant_id": "var-500", "total_fill_quantity": 50, "fill_unit": "L"}],
            }
        ],
        batch_id="batch-1",
    )
    return test_db

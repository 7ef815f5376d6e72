"""
Tests for Catalog Service functions.

Tests cover:
- Materials, packaging and labels with near-duplicate name warnings
- Supplier offers with price derivation from bulk prices
- Price updates
- Filtering supplier items
"""

import logging

import pytest

from costtracker.services.catalog_service import (
    create_label,
    create_material,
    create_packaging,
    create_supplier_label,
    create_supplier_material,
    create_supplier_packaging,
    get_all_labels,
    get_all_materials,
    get_all_packaging,
    get_supplier_labels,
    get_supplier_materials,
    get_supplier_packaging,
    update_supplier_material_price,
)
from costtracker.services.exceptions import MaterialNotFound, ValidationError

CATALOG_LOGGER = "costtracker.services.catalog_service"


class TestMaterials:
    """Tests for create_material() and get_all_materials()."""

    def test_create(self, test_db):
        material = create_material("Citric Acid", category="Acids", unit_price=80, tax=18)

        assert material["name"] == "Citric Acid"
        assert material["category"] == "Acids"
        assert material["warnings"] == []

    def test_similar_name_warning(self, test_db, caplog):
        create_material("Citric Acid")

        with caplog.at_level(logging.WARNING, logger=CATALOG_LOGGER):
            material = create_material("citric-acid")

        assert material["warnings"] == ["Similar name already exists: Citric Acid"]
        record = next(r for r in caplog.records if getattr(r, "outcome", None) == "similar_names")
        assert record.similar_names == ["Citric Acid"]

    def test_distinct_names_do_not_warn(self, test_db):
        create_material("Citric Acid")
        assert create_material("Acetic Acid")["warnings"] == []

    def test_negative_price_rejected(self, test_db):
        with pytest.raises(ValidationError):
            create_material("Citric Acid", unit_price=-1)

    def test_sorted_by_name(self, test_db):
        create_material("Sodium Chloride")
        create_material("Caustic Soda")
        assert [m["name"] for m in get_all_materials()] == ["Caustic Soda", "Sodium Chloride"]


class TestSupplierMaterials:
    """Tests for supplier material offers."""

    def test_unit_price_from_bulk_price(self, test_db):
        create_material("SLES", material_id="mat-sles")
        offer = create_supplier_material(
            "sup-acme", "mat-sles", tax=18, bulk_price=5000, quantity_for_bulk_price=100
        )
        assert offer["unit_price"] == pytest.approx(50.0)

    def test_zero_bulk_quantity_gives_zero_price(self, test_db):
        create_material("SLES", material_id="mat-sles")
        offer = create_supplier_material("sup-acme", "mat-sles", bulk_price=5000, quantity_for_bulk_price=0)
        assert offer["unit_price"] == 0.0

    def test_unit_is_canonical(self, test_db):
        create_material("SLES", material_id="mat-sles")
        offer = create_supplier_material("sup-acme", "mat-sles", unit_price=1, unit="gm")
        assert offer["unit"] == "g"

    def test_unknown_unit_rejected(self, test_db):
        create_material("SLES", material_id="mat-sles")
        with pytest.raises(ValidationError) as exc_info:
            create_supplier_material("sup-acme", "mat-sles", unit_price=1, unit="lb")
        assert "Unit: Unknown unit 'lb'" in exc_info.value.errors

    def test_bad_availability_rejected(self, test_db):
        create_material("SLES", material_id="mat-sles")
        with pytest.raises(ValidationError):
            create_supplier_material("sup-acme", "mat-sles", unit_price=1, availability="maybe")

    def test_unknown_material(self, test_db):
        with pytest.raises(MaterialNotFound):
            create_supplier_material("sup-acme", "mat-gone", unit_price=1)

    def test_filters(self, seeded_db):
        assert {sm["id"] for sm in get_supplier_materials(material_id="mat-a")} == {"sm-a", "sm-a-alt"}
        assert {sm["id"] for sm in get_supplier_materials(supplier_id="sup-acme")} == {"sm-a", "sm-b"}
        assert [sm["id"] for sm in get_supplier_materials(material_id="mat-a", supplier_id="sup-bottle")] == [
            "sm-a-alt"
        ]

    def test_update_price(self, seeded_db):
        updated = update_supplier_material_price("sm-a", 55.0)
        assert updated["unit_price"] == 55.0
        assert updated["tax"] == 18.0

        updated = update_supplier_material_price("sm-a", 55.0, tax=5.0)
        assert updated["tax"] == 5.0

    def test_update_price_unknown(self, test_db):
        with pytest.raises(MaterialNotFound):
            update_supplier_material_price("sm-gone", 1.0)

    def test_update_price_negative(self, seeded_db):
        with pytest.raises(ValidationError):
            update_supplier_material_price("sm-a", -1.0)


class TestPackagingAndLabels:
    """Tests for packaging and label items and their offers."""

    def test_packaging(self, test_db):
        create_packaging("1 L Bottle", capacity=1, unit="L", packaging_id="pkg-1l")
        offer = create_supplier_packaging("sup-bottle", "pkg-1l", unit_price=14, tax=18)

        assert [p["name"] for p in get_all_packaging()] == ["1 L Bottle"]
        assert [sp["id"] for sp in get_supplier_packaging(packaging_id="pkg-1l")] == [offer["id"]]

    def test_packaging_unknown_unit(self, test_db):
        with pytest.raises(ValidationError):
            create_packaging("Bottle", capacity=1, unit="gallon")

    def test_supplier_packaging_unknown_packaging(self, test_db):
        with pytest.raises(MaterialNotFound):
            create_supplier_packaging("sup-bottle", "pkg-gone", unit_price=1)

    def test_labels(self, test_db):
        create_label("Front Label", size="10x5 cm", label_id="lbl-front")
        offer = create_supplier_label("sup-bottle", "lbl-front", unit_price=2, tax=18)

        assert [lbl["name"] for lbl in get_all_labels()] == ["Front Label"]
        assert [sl["id"] for sl in get_supplier_labels(label_id="lbl-front")] == [offer["id"]]

    def test_label_offer_without_catalog_label(self, test_db):
        offer = create_supplier_label("sup-bottle", None, unit_price=1.5)
        assert offer["label_id"] is None

    def test_label_offer_unknown_label(self, test_db):
        with pytest.raises(MaterialNotFound):
            create_supplier_label("sup-bottle", "lbl-gone", unit_price=1)

"""Tests for catalog and inventory snapshots and dto records."""

import pytest

from costtracker.services.dto import (
    InventoryItemRecord,
    ProductionBatchRecord,
    RecipeRecord,
    SupplierMaterialRecord,
)
from costtracker.services.exceptions import UnknownUnitError, UnresolvedReferenceError
from costtracker.services.snapshots import CatalogSnapshot, InventorySnapshot


class TestRecords:
    def test_from_dict_accepts_camel_case(self):
        record = SupplierMaterialRecord.from_dict(
            {
                "id": "sm-1",
                "supplierId": "sup-1",
                "materialId": "mat-1",
                "unitPrice": 50,
                "tax": 18,
                "createdAt": "2025-01-01T00:00:00",
            }
        )
        assert record.supplier_id == "sup-1"
        assert record.price_with_tax == pytest.approx(59.0)

    def test_recipe_nests_ingredients(self):
        recipe = RecipeRecord.from_dict(
            {
                "id": "rec-1",
                "name": "Floor Cleaner",
                "ingredients": [{"id": "i1", "supplier_material_id": "sm-1", "quantity": 0.6, "unit": "kg"}],
            }
        )
        assert recipe.ingredients[0].recipe_id == "rec-1"

    def test_batch_nests_items(self):
        batch = ProductionBatchRecord.from_dict(
            {
                "id": "b1",
                "batchName": "March run",
                "items": [
                    {"productId": "p1", "variants": [{"variantId": "v1", "totalFillQuantity": 50, "fillUnit": "L"}]}
                ],
            }
        )
        assert batch.items[0].variants[0].total_fill_quantity == 50


class TestCatalogSnapshot:
    def test_lookups(self, floor_cleaner_catalog):
        assert floor_cleaner_catalog.resolve_supplier_material("sm-a").unit_price == 50.0
        assert floor_cleaner_catalog.resolve_supplier_material("sm-gone") is None
        assert floor_cleaner_catalog.get_supplier_packaging(None) is None
        assert [v.id for v in floor_cleaner_catalog.variants_for_product("prod-floor")] == ["var-500"]

    def test_require_raises(self, floor_cleaner_catalog):
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            floor_cleaner_catalog.require_variant("var-gone")
        assert exc_info.value.entity_type == "variant"

    def test_ingredients_attached_in_order(self, floor_cleaner_catalog):
        recipe = floor_cleaner_catalog.require_recipe("rec-floor")
        assert [i.id for i in recipe.ingredients] == ["ing-a", "ing-b"]

    def test_alternatives(self, floor_cleaner_catalog):
        assert {sm.id for sm in floor_cleaner_catalog.alternatives_for("sm-a")} == {"sm-a", "sm-a-alt"}
        assert floor_cleaner_catalog.alternatives_for("sm-gone") == []

    def test_display_names(self, floor_cleaner_catalog):
        assert floor_cleaner_catalog.supplier_name("sup-acme") == "Acme Chemicals"
        assert floor_cleaner_catalog.supplier_name("sup-gone") == "Unknown Supplier"
        assert floor_cleaner_catalog.supplier_name(None) == "Unknown Supplier"
        assert floor_cleaner_catalog.item_name("material", "sm-a") == "Material A"
        assert floor_cleaner_catalog.item_name("packaging", "sp-500") == "500 mL Bottle"
        assert floor_cleaner_catalog.item_name("label", "sl-front") == "Front Label"
        assert floor_cleaner_catalog.item_name("material", "sm-gone") == "sm-gone"

    def test_empty_snapshot(self):
        catalog = CatalogSnapshot()
        assert catalog.get_recipe("anything") is None


class TestInventorySnapshot:
    def test_records_for_same_item_are_summed(self):
        snapshot = InventorySnapshot.from_items(
            [
                InventoryItemRecord(id="1", item_type="supplierMaterial", item_id="sm-a", current_stock=10, unit="kg"),
                InventoryItemRecord(id="2", item_type="supplierMaterial", item_id="sm-a", current_stock=500, unit="g"),
            ]
        )
        assert snapshot.on_hand("supplierMaterial", "sm-a") == pytest.approx(10.5)
        assert len(snapshot) == 1

    def test_untracked_item(self):
        snapshot = InventorySnapshot()
        assert not snapshot.is_tracked("supplierMaterial", "sm-a")
        assert snapshot.on_hand("supplierMaterial", "sm-a") is None

    def test_zero_stock_is_tracked(self):
        snapshot = InventorySnapshot.from_items(
            [InventoryItemRecord(id="1", item_type="supplierLabel", item_id="sl-1", current_stock=0, unit="pcs")]
        )
        assert snapshot.is_tracked("supplierLabel", "sl-1")
        assert snapshot.on_hand("supplierLabel", "sl-1") == 0.0

    def test_unknown_unit_raises(self):
        with pytest.raises(UnknownUnitError):
            InventorySnapshot.from_items(
                [InventoryItemRecord(id="1", item_type="supplierMaterial", item_id="sm-a", current_stock=1, unit="lb")]
            )

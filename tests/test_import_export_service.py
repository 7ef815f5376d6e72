"""
Tests for full-database JSON export and import.

Tests cover:
- export_all_to_json() file layout and counts
- import_all_from_json() merge mode skipping existing ids
- Replace mode clearing existing data
- Missing parent rows reported as errors
- Rows breaking table rules reported without aborting the import
- Version and mode checks
"""

import json

import pytest

from costtracker.services.catalog_service import create_material, get_all_materials
from costtracker.services.import_export_service import (
    EXPORT_FORMAT_VERSION,
    ImportResult,
    ImportVersionError,
    export_all_to_json,
    import_all_from_json,
)
from costtracker.services.inventory_service import set_stock
from costtracker.services.recipe_service import delete_recipe, get_recipe
from costtracker.services.snapshot_service import load_batch_record, load_catalog_snapshot


@pytest.fixture
def export_file(seeded_db, tmp_path):
    set_stock("supplierMaterial", "sm-a", 12.5, item_name="Material A")
    path = tmp_path / "export.json"
    export_all_to_json(str(path))
    return path


class TestExport:
    """Tests for export_all_to_json()."""

    def test_file_layout(self, export_file):
        data = json.loads(export_file.read_text(encoding="utf-8"))

        assert data["version"] == EXPORT_FORMAT_VERSION
        assert data["application"] == "formulation-cost-tracker"
        assert "exported_at" in data
        assert {s["id"] for s in data["suppliers"]} == {"sup-acme", "sup-bottle"}
        assert [i["id"] for i in data["recipe_ingredients"]] == ["ing-a", "ing-b"]
        assert data["inventory_items"][0]["current_stock"] == 12.5

    def test_rows_are_flat(self, export_file):
        data = json.loads(export_file.read_text(encoding="utf-8"))
        assert "ingredients" not in data["recipes"][0]

    def test_counts(self, seeded_db, tmp_path):
        result = export_all_to_json(str(tmp_path / "export.json"))

        assert result.entity_counts["supplier_materials"] == 3
        assert result.entity_counts["batch_variant_items"] == 1
        assert result.entity_counts["purchase_orders"] == 0
        assert result.record_count == sum(result.entity_counts.values())
        assert "supplier_materials: 3" in result.get_summary()


class TestImport:
    """Tests for import_all_from_json()."""

    def test_merge_restores_missing_rows(self, export_file):
        delete_recipe("rec-floor")

        result = import_all_from_json(str(export_file))

        assert result.entity_counts["recipes"] == {"imported": 1, "skipped": 0, "errors": 0}
        assert result.entity_counts["recipe_ingredients"]["imported"] == 2
        assert result.entity_counts["suppliers"]["skipped"] == 2
        assert result.failed == 0
        assert [i["id"] for i in get_recipe("rec-floor")["ingredients"]] == ["ing-a", "ing-b"]

    def test_merge_keeps_local_rows(self, export_file):
        create_material("Glycerine", material_id="mat-gly")

        import_all_from_json(str(export_file))

        assert "mat-gly" in {m["id"] for m in get_all_materials()}

    def test_replace_clears_first(self, export_file):
        create_material("Glycerine", material_id="mat-gly")

        result = import_all_from_json(str(export_file), mode="replace")

        assert result.skipped == 0
        assert {m["id"] for m in get_all_materials()} == {"mat-a", "mat-b"}

    def test_round_trip_preserves_derivations(self, export_file):
        import_all_from_json(str(export_file), mode="replace")

        catalog = load_catalog_snapshot()
        batch = load_batch_record("batch-1")
        assert catalog.variants["var-500"].selling_price_per_unit == 50.0
        assert batch.items[0].variants[0].total_fill_quantity == 50

    def test_missing_parent_is_reported(self, test_db, tmp_path):
        path = tmp_path / "orphans.json"
        path.write_text(
            json.dumps(
                {
                    "version": EXPORT_FORMAT_VERSION,
                    "materials": [{"id": "mat-a", "name": "Material A"}],
                    "supplier_materials": [
                        {"id": "sm-a", "supplier_id": "sup-acme", "material_id": "mat-a", "unit_price": 50},
                        {"id": "sm-x", "supplier_id": "sup-acme", "material_id": "mat-gone", "unit_price": 1},
                    ],
                }
            ),
            encoding="utf-8",
        )

        result = import_all_from_json(str(path))

        assert result.successful == 2
        assert result.failed == 1
        assert result.errors == [
            {"record_type": "supplier_materials", "record_id": "sm-x", "message": "material_id mat-gone not found"}
        ]

    def test_row_breaking_table_rules_is_reported(self, test_db, tmp_path):
        path = tmp_path / "partial.json"
        path.write_text(
            json.dumps(
                {
                    "version": EXPORT_FORMAT_VERSION,
                    "materials": [{"id": "mat-a", "name": "Material A"}, {"id": "mat-nameless"}],
                    "supplier_materials": [
                        {"id": "sm-a", "supplier_id": "sup-acme", "material_id": "mat-a", "unit_price": 50},
                        {"id": "sm-bad", "supplier_id": "sup-acme", "material_id": "mat-a", "unit_price": -5},
                    ],
                    "purchase_orders": [
                        {"id": "po-1", "order_number": "PO-1", "supplier_id": "sup-acme", "order_date": "2025-03-10"},
                        {"id": "po-2", "order_number": "PO-1", "supplier_id": "sup-acme", "order_date": "2025-03-11"},
                    ],
                }
            ),
            encoding="utf-8",
        )

        result = import_all_from_json(str(path))

        assert result.successful == 3
        assert result.failed == 3
        assert {(e["record_id"], e["message"]) for e in result.errors} == {
            ("mat-nameless", "name: This field is required"),
            ("sm-bad", "unit_price: Must be zero or greater"),
            ("po-2", "order_number PO-1 already exists"),
        }
        assert [m["id"] for m in get_all_materials()] == ["mat-a"]
        assert load_catalog_snapshot().supplier_materials["sm-a"].unit_price == 50

    def test_bad_version(self, test_db, tmp_path):
        path = tmp_path / "old.json"
        path.write_text(json.dumps({"version": "0.3"}), encoding="utf-8")

        with pytest.raises(ImportVersionError):
            import_all_from_json(str(path))

    def test_bad_mode(self, export_file):
        with pytest.raises(ValueError):
            import_all_from_json(str(export_file), mode="append")


class TestImportResult:
    def test_summary(self):
        result = ImportResult()
        result.add_success("materials")
        result.add_skip("materials")
        result.add_error("recipes", "rec-1", "broken")

        summary = result.get_summary()
        assert "materials: 1 imported, 1 skipped" in summary
        assert "Failed:        1" in summary
        assert "recipes rec-1: broken" in summary

"""
Tests for Inventory Service functions.

Tests cover:
- calculate_inventory_status() thresholds
- set_stock() upsert and validation
- adjust_stock() bounds and low-stock logging
- get_stock_alerts() ordering
- build_inventory_snapshot() conversion to kilograms
"""

import logging

import pytest

from costtracker.services.exceptions import InventoryItemNotFound, ValidationError
from costtracker.services.inventory_service import (
    adjust_stock,
    build_inventory_snapshot,
    calculate_inventory_status,
    get_all_inventory,
    get_inventory_item,
    get_stock_alerts,
    set_stock,
)

INVENTORY_LOGGER = "costtracker.services.inventory_service"


class TestInventoryStatus:
    @pytest.mark.parametrize(
        "stock,minimum,expected",
        [
            (0, 0, "critical"),
            (-1, 10, "critical"),
            (4.9, 5, "low"),
            (5, 5, "ok"),
            (1, 0, "ok"),
        ],
    )
    def test_status(self, stock, minimum, expected):
        assert calculate_inventory_status(stock, minimum) == expected


class TestSetStock:
    """Tests for set_stock()."""

    def test_creates_record(self, test_db):
        item = set_stock("supplierMaterial", "sm-a", 40, unit="KG", min_stock_level=10, item_name="Material A")

        assert item["unit"] == "kg"
        assert item["status"] == "ok"
        assert get_inventory_item(item["id"])["current_stock"] == 40

    def test_second_call_replaces(self, test_db):
        first = set_stock("supplierMaterial", "sm-a", 40)
        second = set_stock("supplierMaterial", "sm-a", 5, min_stock_level=10)

        assert second["id"] == first["id"]
        assert second["status"] == "low"
        assert len(get_all_inventory()) == 1

    def test_invalid_item_type(self, test_db):
        with pytest.raises(ValidationError) as exc_info:
            set_stock("material", "sm-a", 1)
        assert any(e.startswith("Item type") for e in exc_info.value.errors)

    def test_unknown_unit(self, test_db):
        with pytest.raises(ValidationError):
            set_stock("supplierMaterial", "sm-a", 1, unit="lb")

    def test_negative_stock(self, test_db):
        with pytest.raises(ValidationError):
            set_stock("supplierMaterial", "sm-a", -1)

    def test_filter_by_type(self, test_db):
        set_stock("supplierMaterial", "sm-a", 1)
        set_stock("supplierLabel", "sl-front", 100, unit="pcs")

        assert [i["item_id"] for i in get_all_inventory(item_type="supplierLabel")] == ["sl-front"]


class TestAdjustStock:
    """Tests for adjust_stock()."""

    def test_add_and_remove(self, test_db):
        set_stock("supplierMaterial", "sm-a", 10)
        assert adjust_stock("supplierMaterial", "sm-a", 5)["current_stock"] == 15
        assert adjust_stock("supplierMaterial", "sm-a", -15)["status"] == "critical"

    def test_cannot_go_negative(self, test_db):
        set_stock("supplierMaterial", "sm-a", 10)

        with pytest.raises(ValidationError):
            adjust_stock("supplierMaterial", "sm-a", -11)
        assert get_all_inventory()[0]["current_stock"] == 10

    def test_untracked_item(self, test_db):
        with pytest.raises(InventoryItemNotFound):
            adjust_stock("supplierMaterial", "sm-gone", 1)

    def test_low_stock_logs_warning(self, test_db, caplog):
        set_stock("supplierMaterial", "sm-a", 10, min_stock_level=8)

        with caplog.at_level(logging.INFO, logger=INVENTORY_LOGGER):
            adjust_stock("supplierMaterial", "sm-a", -5)

        record = next(r for r in caplog.records if getattr(r, "operation", None) == "adjust_stock")
        assert record.levelno == logging.WARNING
        assert record.stock_status == "low"


class TestStockAlerts:
    def test_critical_first(self, test_db):
        set_stock("supplierMaterial", "sm-a", 2, min_stock_level=5, item_name="A")
        set_stock("supplierMaterial", "sm-b", 0, item_name="B")
        set_stock("supplierLabel", "sl-front", 500, unit="pcs", min_stock_level=100, item_name="C")

        alerts = get_stock_alerts()
        assert [(a["item_id"], a["status"]) for a in alerts] == [("sm-b", "critical"), ("sm-a", "low")]


class TestBuildInventorySnapshot:
    def test_quantities_in_kilograms(self, test_db):
        set_stock("supplierMaterial", "sm-a", 2500, unit="g")
        set_stock("supplierPackaging", "sp-500", 80, unit="pcs")

        snapshot = build_inventory_snapshot()

        assert snapshot.on_hand("supplierMaterial", "sm-a") == pytest.approx(2.5)
        assert snapshot.on_hand("supplierPackaging", "sp-500") == 80
        assert not snapshot.is_tracked("supplierLabel", "sl-front")

    def test_empty(self, test_db):
        assert len(build_inventory_snapshot()) == 0

"""
Tests for Purchase Order Service functions.

Tests cover:
- create_purchase_order() line totals, numbering and validation
- Status progression submitted -> confirmed -> delivered
- receive_items() partial and full receipts into inventory
- Order completion and overdue checks
"""

from datetime import date

import pytest

from costtracker.services.exceptions import (
    InvalidInputError,
    InvalidStatusTransition,
    PurchaseOrderNotFound,
    SupplierNotFound,
    ValidationError,
)
from costtracker.services.inventory_service import get_all_inventory, set_stock
from costtracker.services.purchase_order_service import (
    calculate_order_completion,
    calculate_order_total,
    create_purchase_order,
    get_all_purchase_orders,
    get_purchase_order,
    is_order_overdue,
    receive_items,
    update_order_status,
)
from costtracker.services.supplier_service import create_supplier


def _sles_line(**overrides):
    line = {
        "item_type": "material",
        "item_id": "sm-sles",
        "item_name": "SLES",
        "quantity": 50,
        "unit": "kg",
        "unit_price": 120,
        "tax": 18,
    }
    line.update(overrides)
    return line


@pytest.fixture
def supplier(test_db):
    return create_supplier("Acme Chemicals", supplier_id="sup-acme")


class TestCreatePurchaseOrder:
    """Tests for create_purchase_order()."""

    def test_line_total_includes_tax(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()], order_date="2025-03-10")

        assert order["status"] == "submitted"
        assert order["items"][0]["total_cost"] == pytest.approx(7080.0)
        assert calculate_order_total(order) == pytest.approx(7080.0)

    def test_order_numbers_count_up_per_day(self, supplier):
        first = create_purchase_order("sup-acme", [_sles_line()], order_date=date(2025, 3, 10))
        second = create_purchase_order("sup-acme", [_sles_line()], order_date=date(2025, 3, 10))

        assert first["order_number"] == "PO-20250310-001"
        assert second["order_number"] == "PO-20250310-002"

    def test_numbering_continues_after_explicit_number(self, supplier):
        create_purchase_order("sup-acme", [_sles_line()], order_date="2025-03-10", order_number="PO-20250310-002")

        order = create_purchase_order("sup-acme", [_sles_line()], order_date="2025-03-10")

        assert order["order_number"] == "PO-20250310-003"

    def test_explicit_order_number(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()], order_number="ACME-42")
        assert order["order_number"] == "ACME-42"

    def test_needs_items(self, supplier):
        with pytest.raises(ValidationError) as exc_info:
            create_purchase_order("sup-acme", [])
        assert "Items: An order needs at least one item" in exc_info.value.errors

    def test_invalid_line(self, supplier):
        with pytest.raises(ValidationError) as exc_info:
            create_purchase_order("sup-acme", [_sles_line(quantity=0, item_type="widget")])
        errors = exc_info.value.errors
        assert any(e.startswith("Quantity") for e in errors)
        assert any(e.startswith("Item type") for e in errors)

    def test_delivery_before_order_date(self, supplier):
        with pytest.raises(ValidationError):
            create_purchase_order(
                "sup-acme", [_sles_line()], order_date="2025-03-10", expected_delivery_date="2025-03-01"
            )

    def test_unknown_supplier(self, test_db):
        with pytest.raises(SupplierNotFound):
            create_purchase_order("sup-gone", [_sles_line()])

    def test_listing_filters(self, supplier):
        create_supplier("Bottle Co", supplier_id="sup-bottle")
        create_purchase_order("sup-acme", [_sles_line()], order_date="2025-03-01")
        newer = create_purchase_order("sup-acme", [_sles_line()], order_date="2025-03-05")
        create_purchase_order(
            "sup-bottle",
            [_sles_line(item_type="packaging", item_id="sp-500", unit="pcs", unit_price=10)],
            order_date="2025-03-03",
        )

        acme_orders = get_all_purchase_orders(supplier_id="sup-acme")
        assert [o["id"] for o in acme_orders][0] == newer["id"]
        assert len(acme_orders) == 2
        assert len(get_all_purchase_orders(status="delivered")) == 0


class TestStatusProgression:
    """Tests for update_order_status()."""

    def test_forward_progression(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()])

        assert update_order_status(order["id"], "confirmed")["status"] == "confirmed"
        delivered = update_order_status(order["id"], "delivered")
        assert delivered["status"] == "delivered"
        assert delivered["delivered_date"] == date.today().isoformat()

    def test_cannot_skip_confirmation(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()])

        with pytest.raises(InvalidStatusTransition) as exc_info:
            update_order_status(order["id"], "delivered")
        assert exc_info.value.current == "submitted"

    def test_cannot_go_back(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()])
        update_order_status(order["id"], "confirmed")

        with pytest.raises(InvalidStatusTransition):
            update_order_status(order["id"], "submitted")

    def test_unknown_status(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()])
        with pytest.raises(ValidationError):
            update_order_status(order["id"], "lost")

    def test_unknown_order(self, test_db):
        with pytest.raises(PurchaseOrderNotFound):
            get_purchase_order("po-gone")


class TestReceiveItems:
    """Tests for receive_items()."""

    def test_receive_everything(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()])

        received = receive_items(order["id"], received_date="2025-03-12")

        assert received["status"] == "delivered"
        assert received["delivered_date"] == "2025-03-12"
        assert received["items"][0]["quantity_received"] == 50
        inventory = get_all_inventory()
        assert [(i["item_type"], i["item_id"], i["current_stock"]) for i in inventory] == [
            ("supplierMaterial", "sm-sles", 50)
        ]
        assert inventory[0]["item_name"] == "SLES"

    def test_partial_receipt(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()])
        line_id = order["items"][0]["id"]

        partial = receive_items(order["id"], {line_id: 20})

        assert partial["status"] == "submitted"
        assert calculate_order_completion(partial) == pytest.approx(40.0)

        complete = receive_items(order["id"], {line_id: 30})
        assert complete["status"] == "delivered"
        assert get_all_inventory()[0]["current_stock"] == 50

    def test_adds_to_existing_stock_in_its_unit(self, supplier):
        set_stock("supplierMaterial", "sm-sles", 2000, unit="g")
        order = create_purchase_order("sup-acme", [_sles_line(quantity=3)])

        receive_items(order["id"])

        assert get_all_inventory()[0]["current_stock"] == pytest.approx(5000)

    def test_cannot_over_receive(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()])
        line_id = order["items"][0]["id"]

        with pytest.raises(ValidationError):
            receive_items(order["id"], {line_id: 51})
        assert get_all_inventory() == []

    def test_missing_quantity_is_invalid_input(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()])
        line_id = order["items"][0]["id"]

        with pytest.raises(InvalidInputError) as exc_info:
            receive_items(order["id"], {line_id: None})
        assert exc_info.value.errors == ["Quantity received: Must be a valid number"]
        assert get_all_inventory() == []

    def test_rejects_unit_that_cannot_convert_to_stock_unit(self, supplier):
        set_stock("supplierMaterial", "sm-sles", 4, unit="pcs")
        order = create_purchase_order("sup-acme", [_sles_line(quantity=3)])

        with pytest.raises(ValidationError) as exc_info:
            receive_items(order["id"])
        assert "into stock kept in pcs" in exc_info.value.errors[0]
        assert get_all_inventory()[0]["current_stock"] == 4
        assert get_purchase_order(order["id"])["status"] == "submitted"

    def test_unknown_line(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()])
        with pytest.raises(ValidationError):
            receive_items(order["id"], {"line-gone": 1})

    def test_delivered_order_is_closed(self, supplier):
        order = create_purchase_order("sup-acme", [_sles_line()])
        receive_items(order["id"])

        with pytest.raises(ValidationError):
            receive_items(order["id"])


class TestOrderHelpers:
    def test_completion_caps_over_receipt(self):
        order = {"items": [{"quantity": 10, "quantity_received": 15}, {"quantity": 10, "quantity_received": 0}]}
        assert calculate_order_completion(order) == pytest.approx(50.0)

    def test_completion_of_empty_order(self):
        assert calculate_order_completion({"items": []}) == 0.0

    def test_overdue(self):
        order = {"status": "confirmed", "expected_delivery_date": "2025-03-10"}
        assert is_order_overdue(order, today=date(2025, 3, 11))
        assert not is_order_overdue(order, today=date(2025, 3, 10))

    def test_delivered_is_never_overdue(self):
        order = {"status": "delivered", "expected_delivery_date": "2025-03-10"}
        assert not is_order_overdue(order, today=date(2025, 4, 1))

    def test_no_expected_date(self):
        assert not is_order_overdue({"status": "submitted", "expected_delivery_date": None})

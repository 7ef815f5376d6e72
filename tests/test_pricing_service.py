"""Tests for tax-inclusive pricing."""

import math

import pytest

from costtracker.services.exceptions import InvalidInputError
from costtracker.services.pricing_service import (
    calculate_unit_price,
    cost_for_quantity,
    price_with_tax,
    tax_amount,
)


class TestPriceWithTax:
    def test_applies_percentage(self):
        assert price_with_tax(100.0, 18.0) == pytest.approx(118.0)

    def test_zero_tax(self):
        assert price_with_tax(42.0) == 42.0

    def test_tax_above_100_percent_is_allowed(self):
        assert price_with_tax(10.0, 150.0) == pytest.approx(25.0)

    def test_never_below_unit_price(self):
        for price in [0.0, 1.0, 49.99, 1000.0]:
            for tax in [0.0, 5.0, 18.0, 28.0]:
                assert price_with_tax(price, tax) >= price

    def test_monotonic_in_tax(self):
        prices = [price_with_tax(50.0, tax) for tax in [0, 5, 12, 18, 28]]
        assert prices == sorted(prices)

    def test_negative_inputs_raise(self):
        with pytest.raises(InvalidInputError):
            price_with_tax(-1.0, 18.0)
        with pytest.raises(InvalidInputError):
            price_with_tax(10.0, -5.0)

    def test_nan_raises(self):
        with pytest.raises(InvalidInputError) as exc_info:
            price_with_tax(math.nan, 0.0)
        assert "Unit price: Must be a valid number" in exc_info.value.errors


class TestCostForQuantity:
    def test_floor_cleaner_lines(self):
        assert cost_for_quantity(0.6, 50.0, 18.0) == pytest.approx(35.40)
        assert cost_for_quantity(0.4, 30.0, 18.0) == pytest.approx(14.16)

    def test_tax_amount(self):
        assert tax_amount(50.0, 18.0) == pytest.approx(9.0)

    def test_negative_quantity_raises(self):
        with pytest.raises(InvalidInputError):
            cost_for_quantity(-2, 10.0)


class TestCalculateUnitPrice:
    def test_bulk_price(self):
        assert calculate_unit_price(5000.0, 200.0) == pytest.approx(25.0)

    def test_zero_quantity(self):
        assert calculate_unit_price(5000.0, 0) == 0.0

"""
Pricing and tax calculations.

All prices are in a single fixed currency. Functions return full-precision
floats; rounding belongs to presentation.
"""

from costtracker.services.exceptions import InvalidInputError


def _require_non_negative(**values: float) -> None:
    errors = []
    for name, value in values.items():
        label = name.replace("_", " ").capitalize()
        if value is None or value != value:
            errors.append(f"{label}: Must be a valid number")
        elif value < 0:
            errors.append(f"{label}: Must be zero or greater")
    if errors:
        raise InvalidInputError(errors)


def price_with_tax(unit_price: float, tax_percent: float = 0.0) -> float:
    """
    Apply a percentage tax to a unit price.

    Args:
        unit_price: Price per base unit, before tax
        tax_percent: Tax rate as a percentage (18 means 18%); no upper limit

    Returns:
        unit_price * (1 + tax_percent / 100)

    Raises:
        InvalidInputError: If price or tax is negative

    Example:
        >>> price_with_tax(100.0, 18.0)
        118.0
    """
    _require_non_negative(unit_price=unit_price, tax=tax_percent)
    return unit_price * (1 + tax_percent / 100)


def tax_amount(unit_price: float, tax_percent: float = 0.0) -> float:
    """Return the tax portion of a unit price."""
    _require_non_negative(unit_price=unit_price, tax=tax_percent)
    return unit_price * tax_percent / 100


def cost_for_quantity(quantity_base: float, unit_price: float, tax_percent: float = 0.0) -> float:
    """
    Calculate the tax-inclusive cost of a quantity.

    Args:
        quantity_base: Quantity already expressed in the price's base unit
        unit_price: Price per base unit, before tax
        tax_percent: Tax rate as a percentage

    Returns:
        quantity_base * price_with_tax(unit_price, tax_percent)

    Raises:
        InvalidInputError: If any input is negative
    """
    _require_non_negative(quantity=quantity_base)
    return quantity_base * price_with_tax(unit_price, tax_percent)


def calculate_unit_price(bulk_price: float, quantity_for_bulk_price: float) -> float:
    """
    Derive a unit price from a bulk price.

    Returns 0.0 when the bulk quantity is zero or negative.
    """
    if not quantity_for_bulk_price or quantity_for_bulk_price <= 0:
        return 0.0
    return bulk_price / quantity_for_bulk_price

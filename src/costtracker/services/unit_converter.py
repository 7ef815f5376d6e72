"""
Unit conversion system for the Formulation Cost Tracker.

This module provides:
- Normalisation of quantities to the kilogram base unit
- Unit type detection and compatibility checks
- Same-dimension conversions between recognised units
- Unit count calculation for batch fills

Conversion Strategy:
- Every recognised unit has exactly one kilogram factor (UNIT_TO_KG)
- Volume converts through the density of water (1 L = 1 kg)
- Pieces pass through unchanged (a count, not a mass)
- Unrecognised units raise UnknownUnitError rather than passing through
"""

import math
from typing import Optional, Tuple

from costtracker.services.exceptions import InvalidInputError, UnknownUnitError
from costtracker.utils.constants import UNIT_ALIASES, UNIT_TO_KG, UNIT_TYPE_MAP


# ============================================================================
# Unit Lookup
# ============================================================================


def canonical_unit(unit: Optional[str]) -> Optional[str]:
    """
    Resolve a unit string to its canonical spelling.

    Args:
        unit: Unit string as stored (e.g., "KG", "ml", "gm")

    Returns:
        Canonical unit ("kg", "g", "L", "mL", "pcs"), or None if unrecognised
    """
    if not isinstance(unit, str):
        return None
    return UNIT_ALIASES.get(unit.strip().lower())


def get_kg_factor(unit: str) -> float:
    """
    Get the kilogram factor for a unit.

    Raises:
        UnknownUnitError: If the unit is not recognised
    """
    canonical = canonical_unit(unit)
    if canonical is None:
        raise UnknownUnitError(unit)
    return UNIT_TO_KG[canonical]


def get_unit_type(unit: str) -> str:
    """
    Determine the type of a unit.

    Args:
        unit: Unit string

    Returns:
        Unit type: "mass", "volume", "count", or "unknown"
    """
    canonical = canonical_unit(unit)
    if canonical is None:
        return "unknown"
    return UNIT_TYPE_MAP[canonical]


def units_compatible(unit1: str, unit2: str) -> bool:
    """
    Check if two units can be converted into each other.

    Mass and volume are interchangeable through the water density assumption;
    counts only convert to counts.
    """
    type1 = get_unit_type(unit1)
    type2 = get_unit_type(unit2)

    if type1 == "unknown" or type2 == "unknown":
        return False
    if type1 == type2:
        return True
    return {type1, type2} == {"mass", "volume"}


# ============================================================================
# Base Unit Conversions
# ============================================================================


def _check_quantity(quantity: float, field_name: str = "Quantity") -> None:
    if quantity is None or quantity != quantity or quantity < 0:
        raise InvalidInputError([f"{field_name}: Must be zero or greater"])


def to_base_unit(quantity: float, unit: str) -> float:
    """
    Normalise a quantity to kilograms.

    Args:
        quantity: Non-negative quantity in the given unit
        unit: Unit string (kg, g/gm, L, mL/ml, pcs; case-insensitive)

    Returns:
        Quantity in kilograms (pieces are returned unchanged)

    Raises:
        UnknownUnitError: If the unit is not recognised
        InvalidInputError: If the quantity is negative

    Example:
        >>> to_base_unit(500, "g")
        0.5
        >>> to_base_unit(250, "mL")
        0.25
    """
    factor = get_kg_factor(unit)
    _check_quantity(quantity)
    return quantity * factor


def from_base_unit(quantity_kg: float, target_unit: str) -> float:
    """
    Convert a kilogram quantity back to the target unit.

    Raises:
        UnknownUnitError: If the target unit is not recognised
        InvalidInputError: If the quantity is negative
    """
    factor = get_kg_factor(target_unit)
    _check_quantity(quantity_kg)
    return quantity_kg / factor


def convert_units(value: float, from_unit: str, to_unit: str) -> Tuple[bool, float, str]:
    """
    Convert between two recognised units.

    Args:
        value: Quantity to convert
        from_unit: Source unit (e.g., "g")
        to_unit: Target unit (e.g., "kg")

    Returns:
        Tuple of (success, converted_value, error_message)
        - success: True if conversion successful
        - converted_value: Result (0.0 if failed)
        - error_message: Error description (empty string if successful)
    """
    if value < 0:
        return False, 0.0, "Value cannot be negative"

    if canonical_unit(from_unit) is None:
        return False, 0.0, f"Unknown unit: {from_unit}"
    if canonical_unit(to_unit) is None:
        return False, 0.0, f"Unknown unit: {to_unit}"

    if not units_compatible(from_unit, to_unit):
        return (
            False,
            0.0,
            f"Cannot convert {from_unit} to {to_unit}: incompatible unit types",
        )

    return True, from_base_unit(to_base_unit(value, from_unit), to_unit), ""


def format_conversion(value: float, from_unit: str, to_unit: str, precision: int = 2) -> str:
    """
    Format a unit conversion for display.

    Returns:
        Formatted string (e.g., "500 g = 0.50 kg")
        Returns error message if conversion fails
    """
    success, converted, error = convert_units(value, from_unit, to_unit)

    if not success:
        return f"Error: {error}"

    return f"{value:g} {from_unit} = {converted:.{precision}f} {to_unit}"


# ============================================================================
# Unit Counts
# ============================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 always rounding up."""
    return int(math.floor(value + 0.5))


def calculate_units(
    variant_fill_quantity: float,
    variant_fill_unit: str,
    batch_fill_quantity: float,
    batch_fill_unit: str,
) -> int:
    """
    Calculate how many variant units a batch fill produces.

    Args:
        variant_fill_quantity: Fill of a single unit (e.g., 500)
        variant_fill_unit: Unit of the single fill (e.g., "mL")
        batch_fill_quantity: Total quantity filled for the batch line
        batch_fill_unit: Unit of the batch fill

    Returns:
        Number of units, rounded half up; 0 when the variant fill is zero

    Example:
        >>> calculate_units(500, "mL", 50, "L")
        100
    """
    variant_kg = to_base_unit(variant_fill_quantity, variant_fill_unit)
    batch_kg = to_base_unit(batch_fill_quantity, batch_fill_unit)

    if variant_kg <= 0:
        return 0

    return round_half_up(batch_kg / variant_kg)

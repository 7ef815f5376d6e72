"""
Input validation functions for the Formulation Cost Tracker.

Each validator returns a (is_valid, error_message) tuple so callers can
collect every problem with a record before rejecting it.
"""

from typing import Any, Iterable, List, Optional, Tuple

from .constants import (
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_NUMBER,
    ERROR_INVALID_POSITIVE,
    ERROR_REQUIRED_FIELD,
    MAX_NAME_LENGTH,
)


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """Validate that a string field is not empty."""
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_string_length(
    value: Optional[str], max_length: int = MAX_NAME_LENGTH, field_name: str = "Field"
) -> Tuple[bool, str]:
    """Validate that a string doesn't exceed maximum length."""
    if value and len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def validate_non_negative_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """Validate that a value is a number >= 0."""
    try:
        num_value = float(value)
    except (ValueError, TypeError):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if num_value != num_value:  # NaN
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if num_value < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    return True, ""


def validate_positive_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """Validate that a value is a number > 0."""
    try:
        num_value = float(value)
    except (ValueError, TypeError):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if not num_value > 0:
        return False, f"{field_name}: {ERROR_INVALID_POSITIVE}"
    return True, ""


def validate_choice(value: Any, choices: Iterable[str], field_name: str = "Field") -> Tuple[bool, str]:
    """Validate that a value is one of the allowed choices."""
    allowed = list(choices)
    if value not in allowed:
        return False, f"{field_name}: Must be one of {', '.join(allowed)}"
    return True, ""


def collect_errors(*results: Tuple[bool, str]) -> List[str]:
    """
    Gather error messages from validator results.

    Example:
        >>> collect_errors(
        ...     validate_required_string("", "Name"),
        ...     validate_non_negative_number(-1, "Tax"),
        ... )
        ['Name: This field is required', 'Tax: Must be zero or greater']
    """
    return [message for is_valid, message in results if not is_valid]

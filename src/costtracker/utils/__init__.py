"""Utilities package for the Formulation Cost Tracker."""

from .color_utils import assign_category_color, generate_color_from_string
from .text_utils import (
    are_strings_similar,
    find_similar_items,
    levenshtein_distance,
    normalize_text,
)

__all__ = [
    "assign_category_color",
    "generate_color_from_string",
    "are_strings_similar",
    "find_similar_items",
    "levenshtein_distance",
    "normalize_text",
]

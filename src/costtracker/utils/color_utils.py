"""Category color assignment for charts and badges."""

from typing import Dict

PREDEFINED_CATEGORY_COLORS: Dict[str, str] = {
    "acids": "#ef4444",
    "bases": "#3b82f6",
    "colors": "#a855f7",
    "salts": "#06b6d4",
    "thickeners": "#10b981",
    "bottles": "#f59e0b",
    "labels": "#ec4899",
    "other": "#6b7280",
}


def _to_int32(value: int) -> int:
    """Wrap an integer to the signed 32-bit range."""
    return ((value + 2**31) % 2**32) - 2**31


def string_hash(text: str) -> int:
    """
    Hash a string with the classic ``hash * 31 + char`` scheme.

    Characters are taken as UTF-16 code units and the shift wraps at 32
    bits, so results match the hash the stored colors were generated with.
    """
    hash_value = 0
    encoded = text.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        shifted = _to_int32(_to_int32(hash_value) << 5)
        hash_value = code_unit + (shifted - hash_value)
    return hash_value


def generate_color_from_string(text: str) -> str:
    """
    Generate a pastel HSL color from a string.

    The same input always yields the same color.

    Returns:
        CSS color like "hsl(212, 71%, 60%)"
    """
    hash_value = string_hash(text)
    hue = abs(hash_value) % 360
    saturation = 65 + abs(hash_value) % 15
    lightness = 55 + abs(_to_int32(hash_value) >> 8) % 15
    return f"hsl({hue}, {saturation}%, {lightness}%)"


def assign_category_color(category_name: str) -> str:
    """
    Assign a color to a category.

    Known categories get their predefined color; anything else gets a
    hash-based color.
    """
    normalized = category_name.strip().lower()
    if normalized in PREDEFINED_CATEGORY_COLORS:
        return PREDEFINED_CATEGORY_COLORS[normalized]
    return generate_color_from_string(category_name)

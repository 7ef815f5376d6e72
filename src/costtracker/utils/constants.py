"""
Constants and enumerations for the Formulation Cost Tracker application.

This module defines all system-wide constants including:
- Unit types (mass, volume, count) and their kilogram factors
- Entity status values
- Margin and inventory thresholds
- Application metadata
"""

from typing import Dict, List

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Formulation Cost Tracker"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"
DATABASE_FILENAME = "cost_tracker.db"

# Environment variables
ENV_VAR_ENVIRONMENT = "COSTTRACKER_ENV"
ENV_VAR_DATABASE_URL = "COSTTRACKER_DATABASE_URL"

# ============================================================================
# Unit Types
# ============================================================================

MASS_UNITS: List[str] = [
    "kg",  # Kilogram (base)
    "g",  # Gram
]

VOLUME_UNITS: List[str] = [
    "L",  # Litre (1 L treated as 1 kg)
    "mL",  # Millilitre
]

COUNT_UNITS: List[str] = [
    "pcs",  # Pieces
]

ALL_UNITS: List[str] = MASS_UNITS + VOLUME_UNITS + COUNT_UNITS

# Kilogram-equivalent factor for every recognised unit.
# Volume assumes the density of water.
UNIT_TO_KG: Dict[str, float] = {
    "kg": 1.0,
    "g": 0.001,
    "L": 1.0,
    "mL": 0.001,
    "pcs": 1.0,
}

# Alternate spellings found in stored data, mapped to canonical units
UNIT_ALIASES: Dict[str, str] = {
    "kg": "kg",
    "g": "g",
    "gm": "g",
    "l": "L",
    "ml": "mL",
    "pcs": "pcs",
    "pc": "pcs",
}

UNIT_TYPE_MAP: Dict[str, str] = {
    "kg": "mass",
    "g": "mass",
    "L": "volume",
    "mL": "volume",
    "pcs": "count",
}

BASE_UNIT = "kg"

# ============================================================================
# Status Values
# ============================================================================

RECIPE_STATUSES: List[str] = ["draft", "active", "discontinued"]
PRODUCT_STATUSES: List[str] = ["draft", "active", "discontinued"]

BATCH_STATUSES: List[str] = [
    "draft",
    "scheduled",
    "in-progress",
    "completed",
    "cancelled",
]

AVAILABILITY_STATES: List[str] = ["in-stock", "limited", "out-of-stock"]

INVENTORY_ITEM_TYPES: List[str] = [
    "supplierMaterial",
    "supplierPackaging",
    "supplierLabel",
]

INVENTORY_STATUSES: List[str] = ["ok", "low", "critical"]

ORDER_ITEM_TYPES: List[str] = ["material", "packaging", "label"]

ORDER_STATUSES: List[str] = ["submitted", "confirmed", "delivered"]

# Allowed purchase order transitions
ORDER_STATUS_PROGRESSION: Dict[str, List[str]] = {
    "submitted": ["confirmed"],
    "confirmed": ["delivered"],
    "delivered": [],
}

# Requirement item type -> inventory item type
REQUIREMENT_TO_INVENTORY_TYPE: Dict[str, str] = {
    "material": "supplierMaterial",
    "packaging": "supplierPackaging",
    "label": "supplierLabel",
}

# ============================================================================
# Thresholds
# ============================================================================

MARGIN_CRITICAL_THRESHOLD = 20.0
MARGIN_WARNING_THRESHOLD = 30.0

DEFAULT_SIMILARITY_THRESHOLD = 2

# Display name used when a supplier reference no longer resolves
UNKNOWN_SUPPLIER_NAME = "Unknown Supplier"

# ============================================================================
# Validation Limits
# ============================================================================

MAX_NAME_LENGTH = 200
MAX_NOTES_LENGTH = 2000

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_NUMBER = "Must be a valid number"
ERROR_INVALID_NON_NEGATIVE = "Must be zero or greater"
ERROR_INVALID_POSITIVE = "Must be greater than zero"

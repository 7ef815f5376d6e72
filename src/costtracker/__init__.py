"""Formulation Cost Tracker - cost and requirements engine for cleaning-product manufacturing."""

from costtracker.utils.constants import APP_VERSION

__version__ = APP_VERSION

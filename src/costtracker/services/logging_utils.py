"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across cost derivations and store
writes.

Usage:
    from costtracker.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    # Log successful operation
    log_operation(
        logger,
        operation="compute_batch_requirements",
        outcome="success",
        batch_id="batch-1",
        shortfall_count=2,
    )

    # Log a partial failure
    log_operation(
        logger,
        operation="compute_recipe_cost",
        outcome="unresolved_ingredients",
        level=logging.WARNING,
        unresolved_ingredient_ids=["ing-3"],
    )
"""

import logging
from typing import Any

LOGGER_PREFIX = "costtracker.services"


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger named with the 'costtracker.services' prefix.

    Example:
        >>> logger = get_service_logger("costtracker.services.recipe_cost_service")
        >>> logger.name
        'costtracker.services.recipe_cost_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter for structured logging
    handlers; the message itself is "<operation>: <outcome>".

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "compute_recipe_cost")
        outcome: Outcome description (e.g., "success", "unresolved_references")
        level: Log level (default: INFO). Use DEBUG for frequent derivations.
        **context: Additional context fields (entity IDs, counts, etc.)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)

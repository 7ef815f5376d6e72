"""Recipe Service - recipe and ingredient management.

Stored cost figures on a recipe (total_cost_per_kg, profit_margin) are
never updated as a side effect. They change only through
``save_recipe_costs``, which runs the cost roll-up against current supplier
prices and writes the result.

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly
- If session is None, create a new session via session_scope()
"""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from costtracker.models import Recipe, RecipeIngredient
from costtracker.services.database import session_scope
from costtracker.services.exceptions import RecipeNotFound, ValidationError
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.services.product_cost_service import compute_margin
from costtracker.services.recipe_cost_service import RecipeCostResult, compute_recipe_cost_for
from costtracker.services.snapshot_service import load_catalog_snapshot
from costtracker.services.unit_converter import canonical_unit
from costtracker.utils.constants import RECIPE_STATUSES
from costtracker.utils.validators import (
    collect_errors,
    validate_choice,
    validate_non_negative_number,
    validate_required_string,
    validate_string_length,
)

logger = get_service_logger(__name__)


def _validate_ingredient(supplier_material_id: str, quantity: Any, unit: str) -> List[str]:
    errors = collect_errors(
        validate_required_string(supplier_material_id, "Supplier material"),
        validate_non_negative_number(quantity, "Quantity"),
    )
    if canonical_unit(unit) is None:
        errors.append(f"Unit: Unknown unit '{unit}'")
    return errors


def _get_recipe_or_raise(recipe_id: str, session: Session) -> Recipe:
    recipe = session.query(Recipe).filter(Recipe.id == recipe_id).first()
    if recipe is None:
        raise RecipeNotFound(recipe_id)
    return recipe


def create_recipe(
    name: str,
    ingredients: Optional[Iterable[Dict[str, Any]]] = None,
    status: str = "draft",
    description: Optional[str] = None,
    selling_price_per_kg: Optional[float] = None,
    batch_size_kg: Optional[float] = None,
    target_cost_per_kg: Optional[float] = None,
    recipe_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a recipe with an optional ordered ingredient list.

    Args:
        name: Recipe name (required)
        ingredients: Dicts with supplier_material_id, quantity (per kg of
            output) and unit (default "kg")
        status: draft, active or discontinued
        description: Optional description
        selling_price_per_kg: Optional selling price per kg
        batch_size_kg: Optional reference batch size
        target_cost_per_kg: Optional cost target
        recipe_id: Optional explicit id
        session: Optional database session

    Returns:
        Recipe dict including its ingredients

    Raises:
        ValidationError: If the name, status or any ingredient is invalid

    Example:
        >>> recipe = create_recipe(
        ...     "Floor Cleaner",
        ...     ingredients=[
        ...         {"supplier_material_id": sm_a, "quantity": 0.6},
        ...         {"supplier_material_id": sm_b, "quantity": 400, "unit": "g"},
        ...     ],
        ... )
        >>> len(recipe["ingredients"])
        2
    """
    ingredients = list(ingredients or [])
    errors = collect_errors(
        validate_required_string(name, "Name"),
        validate_string_length(name, field_name="Name"),
        validate_choice(status, RECIPE_STATUSES, "Status"),
    )
    for optional_field, label in (
        (selling_price_per_kg, "Selling price per kg"),
        (batch_size_kg, "Batch size"),
        (target_cost_per_kg, "Target cost per kg"),
    ):
        if optional_field is not None:
            errors += collect_errors(validate_non_negative_number(optional_field, label))
    for item in ingredients:
        errors += _validate_ingredient(
            item.get("supplier_material_id"), item.get("quantity"), item.get("unit", "kg")
        )
    if errors:
        raise ValidationError(errors)

    fields = dict(
        id=recipe_id,
        name=name.strip(),
        status=status,
        description=description,
        selling_price_per_kg=selling_price_per_kg,
        batch_size_kg=batch_size_kg,
        target_cost_per_kg=target_cost_per_kg,
    )
    if session is not None:
        return _create_recipe_impl(fields, ingredients, session)
    with session_scope() as session:
        return _create_recipe_impl(fields, ingredients, session)


def _create_recipe_impl(
    fields: Dict[str, Any], ingredients: List[Dict[str, Any]], session: Session
) -> Dict[str, Any]:
    recipe = Recipe(**{k: v for k, v in fields.items() if v is not None})
    for position, item in enumerate(ingredients):
        recipe.ingredients.append(
            RecipeIngredient(
                **({"id": item["id"]} if item.get("id") else {}),
                supplier_material_id=item["supplier_material_id"],
                quantity=item["quantity"],
                unit=canonical_unit(item.get("unit", "kg")),
                position=position,
            )
        )
    session.add(recipe)
    session.flush()
    log_operation(
        logger, "create_recipe", "success", recipe_id=recipe.id, ingredient_count=len(ingredients)
    )
    return recipe.to_dict(include_relationships=True)


def get_recipe(recipe_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get a recipe with its ingredients.

    Raises:
        RecipeNotFound: If no recipe has this ID
    """
    if session is not None:
        return _get_recipe_or_raise(recipe_id, session).to_dict(include_relationships=True)
    with session_scope() as session:
        return _get_recipe_or_raise(recipe_id, session).to_dict(include_relationships=True)


def get_all_recipes(
    status: Optional[str] = None, session: Optional[Session] = None
) -> List[Dict[str, Any]]:
    """All recipes sorted by name, optionally filtered by status."""
    if session is not None:
        return _get_all_recipes_impl(status, session)
    with session_scope() as session:
        return _get_all_recipes_impl(status, session)


def _get_all_recipes_impl(status: Optional[str], session: Session) -> List[Dict[str, Any]]:
    query = session.query(Recipe)
    if status is not None:
        query = query.filter(Recipe.status == status)
    return [r.to_dict(include_relationships=True) for r in query.order_by(Recipe.name).all()]


def add_ingredient(
    recipe_id: str,
    supplier_material_id: str,
    quantity: float,
    unit: str = "kg",
    ingredient_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Append an ingredient to a recipe.

    Returns:
        The new ingredient as a dict

    Raises:
        RecipeNotFound: If the recipe doesn't exist
        ValidationError: If the ingredient is invalid
    """
    errors = _validate_ingredient(supplier_material_id, quantity, unit)
    if errors:
        raise ValidationError(errors)

    if session is not None:
        return _add_ingredient_impl(recipe_id, supplier_material_id, quantity, unit, ingredient_id, session)
    with session_scope() as session:
        return _add_ingredient_impl(recipe_id, supplier_material_id, quantity, unit, ingredient_id, session)


def _add_ingredient_impl(
    recipe_id: str,
    supplier_material_id: str,
    quantity: float,
    unit: str,
    ingredient_id: Optional[str],
    session: Session,
) -> Dict[str, Any]:
    recipe = _get_recipe_or_raise(recipe_id, session)
    ingredient = RecipeIngredient(
        supplier_material_id=supplier_material_id,
        quantity=quantity,
        unit=canonical_unit(unit),
        position=max((i.position for i in recipe.ingredients), default=-1) + 1,
    )
    if ingredient_id:
        ingredient.id = ingredient_id
    recipe.ingredients.append(ingredient)
    session.flush()
    log_operation(logger, "add_ingredient", "success", recipe_id=recipe_id, ingredient_id=ingredient.id)
    return ingredient.to_dict()


def remove_ingredient(recipe_id: str, ingredient_id: str, session: Optional[Session] = None) -> None:
    """Remove an ingredient from a recipe.

    Raises:
        RecipeNotFound: If the recipe doesn't exist
        ValidationError: If the ingredient isn't part of the recipe
    """
    if session is not None:
        return _remove_ingredient_impl(recipe_id, ingredient_id, session)
    with session_scope() as session:
        return _remove_ingredient_impl(recipe_id, ingredient_id, session)


def _remove_ingredient_impl(recipe_id: str, ingredient_id: str, session: Session) -> None:
    recipe = _get_recipe_or_raise(recipe_id, session)
    ingredient = next((i for i in recipe.ingredients if i.id == ingredient_id), None)
    if ingredient is None:
        raise ValidationError([f"Ingredient {ingredient_id} is not part of recipe {recipe_id}"])
    recipe.ingredients.remove(ingredient)
    for position, remaining in enumerate(recipe.ingredients):
        remaining.position = position
    session.flush()
    log_operation(logger, "remove_ingredient", "success", recipe_id=recipe_id, ingredient_id=ingredient_id)


def update_recipe_status(recipe_id: str, status: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Change a recipe's status.

    Raises:
        RecipeNotFound: If the recipe doesn't exist
        ValidationError: If the status is not a recipe status
    """
    errors = collect_errors(validate_choice(status, RECIPE_STATUSES, "Status"))
    if errors:
        raise ValidationError(errors)

    if session is not None:
        return _update_status_impl(recipe_id, status, session)
    with session_scope() as session:
        return _update_status_impl(recipe_id, status, session)


def _update_status_impl(recipe_id: str, status: str, session: Session) -> Dict[str, Any]:
    recipe = _get_recipe_or_raise(recipe_id, session)
    recipe.update_from_dict({"status": status})
    session.flush()
    log_operation(logger, "update_recipe_status", "success", recipe_id=recipe_id, status=status)
    return recipe.to_dict()


def delete_recipe(recipe_id: str, session: Optional[Session] = None) -> None:
    """Delete a recipe and all of its ingredients.

    Raises:
        RecipeNotFound: If the recipe doesn't exist
    """
    if session is not None:
        return _delete_recipe_impl(recipe_id, session)
    with session_scope() as session:
        return _delete_recipe_impl(recipe_id, session)


def _delete_recipe_impl(recipe_id: str, session: Session) -> None:
    recipe = _get_recipe_or_raise(recipe_id, session)
    ingredient_count = len(recipe.ingredients)
    session.delete(recipe)
    session.flush()
    log_operation(
        logger, "delete_recipe", "success", recipe_id=recipe_id, ingredient_count=ingredient_count
    )


def save_recipe_costs(
    recipe_id: str,
    selling_price_per_kg: Optional[float] = None,
    session: Optional[Session] = None,
) -> RecipeCostResult:
    """Recompute a recipe's cost from current prices and store it.

    Writes total_cost_per_kg, and profit_margin when a selling price per kg
    is known (the one passed in, or the one already stored).

    Args:
        recipe_id: Recipe to cost
        selling_price_per_kg: Optional new selling price per kg to store
        session: Optional database session

    Returns:
        The RecipeCostResult that was saved

    Raises:
        RecipeNotFound: If the recipe doesn't exist
        ValidationError: If the selling price is negative
    """
    if selling_price_per_kg is not None:
        errors = collect_errors(validate_non_negative_number(selling_price_per_kg, "Selling price per kg"))
        if errors:
            raise ValidationError(errors)

    if session is not None:
        return _save_recipe_costs_impl(recipe_id, selling_price_per_kg, session)
    with session_scope() as session:
        return _save_recipe_costs_impl(recipe_id, selling_price_per_kg, session)


def _save_recipe_costs_impl(
    recipe_id: str, selling_price_per_kg: Optional[float], session: Session
) -> RecipeCostResult:
    recipe = _get_recipe_or_raise(recipe_id, session)
    session.flush()

    result = compute_recipe_cost_for(recipe_id, load_catalog_snapshot(session=session))

    changes: Dict[str, Any] = {"total_cost_per_kg": result.total_cost_per_kg}
    if selling_price_per_kg is not None:
        changes["selling_price_per_kg"] = selling_price_per_kg
    selling = changes.get("selling_price_per_kg", recipe.selling_price_per_kg)
    if selling is not None:
        changes["profit_margin"] = compute_margin(result.total_cost_per_kg, selling)

    recipe.update_from_dict(changes)
    session.flush()
    log_operation(
        logger,
        "save_recipe_costs",
        "success",
        recipe_id=recipe_id,
        total_cost_per_kg=result.total_cost_per_kg,
        unresolved_count=len(result.unresolved_ingredient_ids),
    )
    return result

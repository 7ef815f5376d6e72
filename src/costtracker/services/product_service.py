"""Product Service - products and their sellable variants.

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly
- If session is None, create a new session via session_scope()
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from costtracker.models import Product, ProductVariant, Recipe
from costtracker.services.database import session_scope
from costtracker.services.exceptions import (
    ProductNotFound,
    RecipeNotFound,
    ValidationError,
    VariantNotFound,
)
from costtracker.services.logging_utils import get_service_logger, log_operation
from costtracker.services.unit_converter import canonical_unit
from costtracker.utils.constants import PRODUCT_STATUSES
from costtracker.utils.validators import (
    collect_errors,
    validate_choice,
    validate_non_negative_number,
    validate_positive_number,
    validate_required_string,
    validate_string_length,
)

logger = get_service_logger(__name__)


def create_product(
    name: str,
    recipe_id: str,
    status: str = "draft",
    description: Optional[str] = None,
    product_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Create a product made from an existing recipe.

    Raises:
        RecipeNotFound: If the recipe doesn't exist
        ValidationError: If the name or status is invalid
    """
    errors = collect_errors(
        validate_required_string(name, "Name"),
        validate_string_length(name, field_name="Name"),
        validate_choice(status, PRODUCT_STATUSES, "Status"),
    )
    if errors:
        raise ValidationError(errors)

    fields = dict(id=product_id, name=name.strip(), recipe_id=recipe_id, status=status, description=description)
    if session is not None:
        return _create_product_impl(fields, session)
    with session_scope() as session:
        return _create_product_impl(fields, session)


def _create_product_impl(fields: Dict[str, Any], session: Session) -> Dict[str, Any]:
    if session.query(Recipe.id).filter(Recipe.id == fields["recipe_id"]).first() is None:
        raise RecipeNotFound(fields["recipe_id"])
    product = Product(**{k: v for k, v in fields.items() if v is not None})
    session.add(product)
    session.flush()
    log_operation(logger, "create_product", "success", product_id=product.id, recipe_id=product.recipe_id)
    return product.to_dict()


def create_variant(
    product_id: str,
    name: str,
    fill_quantity: float,
    fill_unit: str,
    packaging_selection_id: Optional[str] = None,
    front_label_selection_id: Optional[str] = None,
    back_label_selection_id: Optional[str] = None,
    selling_price_per_unit: float = 0.0,
    sku: str = "",
    minimum_profit_margin: Optional[float] = None,
    variant_id: Optional[str] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Add a sellable variant to a product.

    Args:
        product_id: Owning product
        name: Variant name (e.g., "500 mL Bottle")
        fill_quantity: Fill of one unit (must be greater than zero)
        fill_unit: Unit of the fill
        packaging_selection_id: SupplierPackaging id
        front_label_selection_id: Optional SupplierLabel id
        back_label_selection_id: Optional SupplierLabel id
        selling_price_per_unit: Selling price of one unit
        sku: Stock keeping unit
        minimum_profit_margin: Optional minimum margin percentage
        variant_id: Optional explicit id
        session: Optional database session

    Raises:
        ProductNotFound: If the product doesn't exist
        ValidationError: If fill, unit or price is invalid
    """
    errors = collect_errors(
        validate_required_string(name, "Name"),
        validate_positive_number(fill_quantity, "Fill quantity"),
        validate_non_negative_number(selling_price_per_unit, "Selling price"),
    )
    if canonical_unit(fill_unit) is None:
        errors.append(f"Fill unit: Unknown unit '{fill_unit}'")
    if errors:
        raise ValidationError(errors)

    fields = dict(
        id=variant_id,
        product_id=product_id,
        name=name.strip(),
        sku=sku,
        fill_quantity=fill_quantity,
        fill_unit=canonical_unit(fill_unit),
        packaging_selection_id=packaging_selection_id,
        front_label_selection_id=front_label_selection_id,
        back_label_selection_id=back_label_selection_id,
        selling_price_per_unit=selling_price_per_unit,
        minimum_profit_margin=minimum_profit_margin,
    )
    if session is not None:
        return _create_variant_impl(fields, session)
    with session_scope() as session:
        return _create_variant_impl(fields, session)


def _create_variant_impl(fields: Dict[str, Any], session: Session) -> Dict[str, Any]:
    product = session.query(Product).filter(Product.id == fields["product_id"]).first()
    if product is None:
        raise ProductNotFound(fields["product_id"])
    variant = ProductVariant(**{k: v for k, v in fields.items() if v is not None})
    product.variants.append(variant)
    session.flush()
    log_operation(logger, "create_variant", "success", product_id=product.id, variant_id=variant.id)
    return variant.to_dict()


def get_product(product_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get a product with its variants.

    Raises:
        ProductNotFound: If no product has this ID
    """
    if session is not None:
        return _get_product_impl(product_id, session)
    with session_scope() as session:
        return _get_product_impl(product_id, session)


def _get_product_impl(product_id: str, session: Session) -> Dict[str, Any]:
    product = session.query(Product).filter(Product.id == product_id).first()
    if product is None:
        raise ProductNotFound(product_id)
    return product.to_dict(include_relationships=True)


def get_all_products(session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """All products sorted by name, each with its variants."""
    if session is not None:
        return [p.to_dict(include_relationships=True) for p in session.query(Product).order_by(Product.name)]
    with session_scope() as session:
        return [p.to_dict(include_relationships=True) for p in session.query(Product).order_by(Product.name)]


def get_variant(variant_id: str, session: Optional[Session] = None) -> Dict[str, Any]:
    """Get a product variant.

    Raises:
        VariantNotFound: If no variant has this ID
    """
    if session is not None:
        return _get_variant_impl(variant_id, session)
    with session_scope() as session:
        return _get_variant_impl(variant_id, session)


def _get_variant_impl(variant_id: str, session: Session) -> Dict[str, Any]:
    variant = session.query(ProductVariant).filter(ProductVariant.id == variant_id).first()
    if variant is None:
        raise VariantNotFound(variant_id)
    return variant.to_dict()


def delete_product(product_id: str, session: Optional[Session] = None) -> None:
    """Delete a product and its variants.

    Raises:
        ProductNotFound: If no product has this ID
    """
    if session is not None:
        return _delete_product_impl(product_id, session)
    with session_scope() as session:
        return _delete_product_impl(product_id, session)


def _delete_product_impl(product_id: str, session: Session) -> None:
    product = session.query(Product).filter(Product.id == product_id).first()
    if product is None:
        raise ProductNotFound(product_id)
    session.delete(product)
    session.flush()
    log_operation(logger, "delete_product", "success", product_id=product_id)

"""
Recipe models for product formulations.

This module contains:
- Recipe: a formulation with its stored cost figures
- RecipeIngredient: quantity of a supplier material per kg of output

A recipe owns its ingredients; deleting the recipe deletes them.
"""

from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class Recipe(BaseModel):
    """
    Recipe model.

    Attributes:
        name: Recipe name (required)
        description: Optional description
        status: draft, active or discontinued
        total_cost_per_kg: Stored cost, written only by an explicit save
        selling_price_per_kg: Stored selling price per kg
        profit_margin: Stored margin percentage
        batch_size_kg: Optional reference batch size
        target_cost_per_kg: Optional cost target
    """

    __tablename__ = "recipes"

    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="draft")

    total_cost_per_kg = Column(Float, nullable=True)
    selling_price_per_kg = Column(Float, nullable=True)
    profit_margin = Column(Float, nullable=True)
    batch_size_kg = Column(Float, nullable=True)
    target_cost_per_kg = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.position",
        lazy="joined",
    )

    __table_args__ = (Index("idx_recipe_status", "status"),)


class RecipeIngredient(BaseModel):
    """
    Ingredient line of a recipe.

    Attributes:
        recipe_id: Owning recipe
        supplier_material_id: Supplier material priced for this line (not
            enforced; a missing one is reported as unresolved)
        quantity: Quantity per kg of recipe output
        unit: Unit of quantity
        position: Order within the recipe
    """

    __tablename__ = "recipe_ingredients"

    recipe_id = Column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    supplier_material_id = Column(String(36), nullable=False, index=True)
    quantity = Column(Float, nullable=False)
    unit = Column(String(10), nullable=False, default="kg")
    position = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    recipe = relationship("Recipe", back_populates="ingredients")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_recipe_ingredient_quantity_non_negative"),
    )

"""
Tests for Recipe Service functions.

Tests cover:
- create_recipe() with ordered ingredients
- add_ingredient() / remove_ingredient()
- Status changes and cascade delete
- save_recipe_costs() storing the current cost roll-up
"""

import pytest

from costtracker.models import RecipeIngredient
from costtracker.services.catalog_service import update_supplier_material_price
from costtracker.services.exceptions import RecipeNotFound, ValidationError
from costtracker.services.recipe_service import (
    add_ingredient,
    create_recipe,
    delete_recipe,
    get_all_recipes,
    get_recipe,
    remove_ingredient,
    save_recipe_costs,
    update_recipe_status,
)


class TestCreateRecipe:
    """Tests for create_recipe()."""

    def test_ingredients_keep_their_order(self, test_db):
        recipe = create_recipe(
            "Glass Cleaner",
            ingredients=[
                {"supplier_material_id": "sm-2", "quantity": 0.1},
                {"supplier_material_id": "sm-1", "quantity": 900, "unit": "g"},
            ],
        )

        assert recipe["status"] == "draft"
        assert [i["supplier_material_id"] for i in recipe["ingredients"]] == ["sm-2", "sm-1"]
        assert recipe["ingredients"][1]["unit"] == "g"

    def test_invalid_ingredient_rejected(self, test_db):
        with pytest.raises(ValidationError) as exc_info:
            create_recipe("Glass Cleaner", ingredients=[{"supplier_material_id": "sm-1", "quantity": -1}])
        assert any(e.startswith("Quantity") for e in exc_info.value.errors)

    def test_unknown_ingredient_unit_rejected(self, test_db):
        with pytest.raises(ValidationError):
            create_recipe("Glass Cleaner", ingredients=[{"supplier_material_id": "sm-1", "quantity": 1, "unit": "cup"}])

    def test_invalid_status_rejected(self, test_db):
        with pytest.raises(ValidationError):
            create_recipe("Glass Cleaner", status="archived")

    def test_filter_by_status(self, test_db):
        create_recipe("Glass Cleaner")
        create_recipe("Floor Cleaner", status="active")
        assert [r["name"] for r in get_all_recipes(status="active")] == ["Floor Cleaner"]
        assert [r["name"] for r in get_all_recipes()] == ["Floor Cleaner", "Glass Cleaner"]


class TestIngredients:
    """Tests for adding and removing ingredients."""

    def test_add_appends(self, seeded_db):
        ingredient = add_ingredient("rec-floor", "sm-a-alt", 0.05, ingredient_id="ing-c")

        assert ingredient["position"] == 2
        assert [i["id"] for i in get_recipe("rec-floor")["ingredients"]] == ["ing-a", "ing-b", "ing-c"]

    def test_add_to_unknown_recipe(self, test_db):
        with pytest.raises(RecipeNotFound):
            add_ingredient("rec-gone", "sm-a", 1.0)

    def test_remove(self, seeded_db):
        remove_ingredient("rec-floor", "ing-b")
        assert [i["id"] for i in get_recipe("rec-floor")["ingredients"]] == ["ing-a"]

    def test_positions_stay_unique_after_remove_then_add(self, seeded_db):
        add_ingredient("rec-floor", "sm-a-alt", 0.05, ingredient_id="ing-c")
        remove_ingredient("rec-floor", "ing-a")
        ingredient = add_ingredient("rec-floor", "sm-a", 0.1, ingredient_id="ing-d")

        ingredients = get_recipe("rec-floor")["ingredients"]
        assert [i["id"] for i in ingredients] == ["ing-b", "ing-c", "ing-d"]
        assert [i["position"] for i in ingredients] == [0, 1, 2]
        assert ingredient["position"] == 2

    def test_remove_foreign_ingredient(self, seeded_db):
        with pytest.raises(ValidationError):
            remove_ingredient("rec-floor", "ing-gone")


class TestStatusAndDelete:
    """Tests for update_recipe_status() and delete_recipe()."""

    def test_update_status(self, seeded_db):
        assert update_recipe_status("rec-floor", "discontinued")["status"] == "discontinued"

    def test_update_status_invalid(self, seeded_db):
        with pytest.raises(ValidationError):
            update_recipe_status("rec-floor", "archived")

    def test_delete_cascades_to_ingredients(self, seeded_db):
        delete_recipe("rec-floor")

        with pytest.raises(RecipeNotFound):
            get_recipe("rec-floor")
        session = seeded_db()
        assert session.query(RecipeIngredient).count() == 0
        session.close()

    def test_delete_unknown(self, test_db):
        with pytest.raises(RecipeNotFound):
            delete_recipe("rec-gone")


class TestSaveRecipeCosts:
    """Tests for save_recipe_costs()."""

    def test_stores_cost(self, seeded_db):
        result = save_recipe_costs("rec-floor")

        assert result.total_cost_per_kg == pytest.approx(49.56)
        stored = get_recipe("rec-floor")
        assert stored["total_cost_per_kg"] == pytest.approx(49.56)
        assert stored["profit_margin"] is None

    def test_stores_margin_with_selling_price(self, seeded_db):
        save_recipe_costs("rec-floor", selling_price_per_kg=80.0)

        stored = get_recipe("rec-floor")
        assert stored["selling_price_per_kg"] == 80.0
        assert stored["profit_margin"] == pytest.approx((80.0 - 49.56) / 80.0 * 100)

    def test_follows_current_prices(self, seeded_db):
        save_recipe_costs("rec-floor")
        update_supplier_material_price("sm-a", 60.0)

        result = save_recipe_costs("rec-floor")
        assert result.total_cost_per_kg == pytest.approx(0.6 * 60 * 1.18 + 14.16)

    def test_unknown_recipe(self, test_db):
        with pytest.raises(RecipeNotFound):
            save_recipe_costs("rec-gone")

"""
In-memory catalog and inventory snapshots.

A snapshot is built once at the start of a derivation call from plain dto
records and then only read. Lookups return None for ids that don't
resolve; ``require_*`` variants raise UnresolvedReferenceError instead.
"""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from costtracker.services.dto import (
    InventoryItemRecord,
    LabelRecord,
    MaterialRecord,
    PackagingRecord,
    ProductRecord,
    ProductVariantRecord,
    RecipeIngredientRecord,
    RecipeRecord,
    SupplierLabelRecord,
    SupplierMaterialRecord,
    SupplierPackagingRecord,
    SupplierRecord,
)
from costtracker.services.exceptions import UnresolvedReferenceError
from costtracker.services.unit_converter import get_kg_factor
from costtracker.utils.constants import UNKNOWN_SUPPLIER_NAME


def _index(records) -> Dict[str, object]:
    return {record.id: record for record in records}


class CatalogSnapshot:
    """Read-only view of suppliers, catalog items, recipes and products."""

    def __init__(
        self,
        suppliers: Iterable[SupplierRecord] = (),
        materials: Iterable[MaterialRecord] = (),
        supplier_materials: Iterable[SupplierMaterialRecord] = (),
        packaging: Iterable[PackagingRecord] = (),
        supplier_packaging: Iterable[SupplierPackagingRecord] = (),
        labels: Iterable[LabelRecord] = (),
        supplier_labels: Iterable[SupplierLabelRecord] = (),
        recipes: Iterable[RecipeRecord] = (),
        products: Iterable[ProductRecord] = (),
        variants: Iterable[ProductVariantRecord] = (),
    ):
        self.suppliers: Dict[str, SupplierRecord] = _index(suppliers)
        self.materials: Dict[str, MaterialRecord] = _index(materials)
        self.supplier_materials: Dict[str, SupplierMaterialRecord] = _index(supplier_materials)
        self.packaging: Dict[str, PackagingRecord] = _index(packaging)
        self.supplier_packaging: Dict[str, SupplierPackagingRecord] = _index(supplier_packaging)
        self.labels: Dict[str, LabelRecord] = _index(labels)
        self.supplier_labels: Dict[str, SupplierLabelRecord] = _index(supplier_labels)
        self.recipes: Dict[str, RecipeRecord] = _index(recipes)
        self.products: Dict[str, ProductRecord] = _index(products)
        self.variants: Dict[str, ProductVariantRecord] = _index(variants)

    @classmethod
    def from_records(
        cls,
        recipe_ingredients: Optional[Iterable[RecipeIngredientRecord]] = None,
        **collections,
    ) -> "CatalogSnapshot":
        """
        Build a snapshot, optionally attaching loose ingredient records.

        Ingredients passed separately are appended, in the given order, to
        the recipe whose id matches their recipe_id. Ingredients whose
        recipe is not in the snapshot are ignored.

        Example:
            >>> snapshot = CatalogSnapshot.from_records(
            ...     supplier_materials=[sm_a, sm_b],
            ...     recipes=[RecipeRecord(id="r1", name="Floor Cleaner")],
            ...     recipe_ingredients=[ing_a, ing_b],
            ... )
        """
        if recipe_ingredients:
            by_recipe: Dict[str, List[RecipeIngredientRecord]] = {}
            for ingredient in recipe_ingredients:
                by_recipe.setdefault(ingredient.recipe_id, []).append(ingredient)

            recipes = []
            for recipe in collections.get("recipes", ()):
                extra = by_recipe.get(recipe.id)
                if extra:
                    recipe = replace(recipe, ingredients=tuple(recipe.ingredients) + tuple(extra))
                recipes.append(recipe)
            collections["recipes"] = recipes

        return cls(**collections)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def resolve_supplier_material(self, supplier_material_id: str) -> Optional[SupplierMaterialRecord]:
        """Price resolver used by recipe costing."""
        return self.supplier_materials.get(supplier_material_id)

    def get_supplier_packaging(self, supplier_packaging_id: Optional[str]) -> Optional[SupplierPackagingRecord]:
        if not supplier_packaging_id:
            return None
        return self.supplier_packaging.get(supplier_packaging_id)

    def get_supplier_label(self, supplier_label_id: Optional[str]) -> Optional[SupplierLabelRecord]:
        if not supplier_label_id:
            return None
        return self.supplier_labels.get(supplier_label_id)

    def get_recipe(self, recipe_id: str) -> Optional[RecipeRecord]:
        return self.recipes.get(recipe_id)

    def get_product(self, product_id: str) -> Optional[ProductRecord]:
        return self.products.get(product_id)

    def get_variant(self, variant_id: str) -> Optional[ProductVariantRecord]:
        return self.variants.get(variant_id)

    def require_recipe(self, recipe_id: str) -> RecipeRecord:
        recipe = self.get_recipe(recipe_id)
        if recipe is None:
            raise UnresolvedReferenceError("recipe", recipe_id)
        return recipe

    def require_variant(self, variant_id: str) -> ProductVariantRecord:
        variant = self.get_variant(variant_id)
        if variant is None:
            raise UnresolvedReferenceError("variant", variant_id)
        return variant

    def variants_for_product(self, product_id: str) -> List[ProductVariantRecord]:
        return [v for v in self.variants.values() if v.product_id == product_id]

    def alternatives_for(self, supplier_material_id: str) -> List[SupplierMaterialRecord]:
        """All supplier offers of the same material, the given one included."""
        current = self.resolve_supplier_material(supplier_material_id)
        if current is None:
            return []
        return [
            sm for sm in self.supplier_materials.values() if sm.material_id == current.material_id
        ]

    # ------------------------------------------------------------------
    # Display names
    # ------------------------------------------------------------------

    def supplier_name(self, supplier_id: Optional[str]) -> str:
        """Supplier name, or "Unknown Supplier" for orphaned references."""
        supplier = self.suppliers.get(supplier_id) if supplier_id else None
        if supplier is None:
            return UNKNOWN_SUPPLIER_NAME
        return supplier.name

    def item_name(self, item_type: str, supplier_item_id: str) -> str:
        """
        Name of the catalog item behind a supplier item.

        Args:
            item_type: "material", "packaging" or "label"
            supplier_item_id: Supplier item id

        Returns:
            The material/packaging/label name, or the id when unresolved
        """
        if item_type == "material":
            sm = self.supplier_materials.get(supplier_item_id)
            item = self.materials.get(sm.material_id) if sm else None
        elif item_type == "packaging":
            sp = self.supplier_packaging.get(supplier_item_id)
            item = self.packaging.get(sp.packaging_id) if sp else None
        elif item_type == "label":
            sl = self.supplier_labels.get(supplier_item_id)
            item = self.labels.get(sl.label_id) if sl and sl.label_id else None
        else:
            item = None
        return item.name if item is not None else supplier_item_id


class InventorySnapshot:
    """
    On-hand quantities keyed by (inventory item type, supplier item id).

    Quantities are normalised to the base unit when the snapshot is built;
    several records for the same item are summed.
    """

    def __init__(self, on_hand: Optional[Dict[Tuple[str, str], float]] = None):
        self._on_hand: Dict[Tuple[str, str], float] = dict(on_hand or {})

    @classmethod
    def from_items(cls, items: Iterable[InventoryItemRecord]) -> "InventorySnapshot":
        """
        Build a snapshot from inventory records.

        Raises:
            UnknownUnitError: If a record's unit is not recognised
        """
        on_hand: Dict[Tuple[str, str], float] = {}
        for item in items:
            key = (item.item_type, item.item_id)
            quantity = item.current_stock * get_kg_factor(item.unit)
            on_hand[key] = on_hand.get(key, 0.0) + quantity
        return cls(on_hand)

    def is_tracked(self, item_type: str, item_id: str) -> bool:
        return (item_type, item_id) in self._on_hand

    def on_hand(self, item_type: str, item_id: str) -> Optional[float]:
        """On-hand base quantity, or None when the item has no inventory record."""
        return self._on_hand.get((item_type, item_id))

    def __len__(self) -> int:
        return len(self._on_hand)

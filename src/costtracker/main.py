"""
Formulation Cost Tracker command line interface.

Usage Examples:
    # Create the database
    costtracker init-db

    # Back up and restore
    costtracker export backup.json
    costtracker import backup.json --mode replace

    # Cost reports
    costtracker recipe-cost <recipe-id>
    costtracker variant-cost <variant-id>
    costtracker batch-requirements <batch-id> --by supplier
"""

import argparse
import logging
import sys
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from costtracker.services.batch_requirements_service import (
    compute_batch_requirements,
    group_by_product,
    group_by_supplier,
    overview,
)
from costtracker.services.database import initialize_app_database
from costtracker.services.exceptions import ServiceError
from costtracker.services.import_export_service import (
    ImportVersionError,
    export_all_to_json,
    import_all_from_json,
)
from costtracker.services.inventory_service import build_inventory_snapshot
from costtracker.services.product_cost_service import analyze_variant_cost
from costtracker.services.recipe_cost_service import compute_recipe_cost_for
from costtracker.services.snapshot_service import load_batch_record, load_catalog_snapshot
from costtracker.utils.constants import APP_NAME, APP_VERSION


def configure_logging(verbose: bool = False) -> None:
    """Send costtracker log records to stderr."""
    root = logging.getLogger("costtracker")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def export_all(output_file: str) -> int:
    print(f"Exporting all data to {output_file}...")
    result = export_all_to_json(output_file)
    print(result.get_summary())
    return 0


def import_all(input_file: str, mode: str = "merge") -> int:
    print(f"Importing all data from {input_file} (mode: {mode})...")
    result = import_all_from_json(input_file, mode=mode)
    print(result.get_summary())
    return 1 if result.failed else 0


def recipe_cost(recipe_id: str) -> int:
    catalog = load_catalog_snapshot()
    recipe = catalog.require_recipe(recipe_id)
    result = compute_recipe_cost_for(recipe_id, catalog)

    print(f"Recipe: {recipe.name}")
    for line in sorted(result.per_ingredient, key=lambda l: l.cost_for_quantity, reverse=True):
        name = catalog.item_name("material", line.supplier_material_id)
        flag = "" if line.resolved else "  (unresolved)"
        print(
            f"  {name:<30} {line.quantity_kg:>8.3f} kg  {line.unit_price_with_tax:>10.2f}/kg"
            f"  {line.cost_for_quantity:>10.2f}  {line.percentage_share:>6.2f}%{flag}"
        )
    print(f"Total quantity: {result.total_quantity_kg:.3f} kg")
    print(f"Cost per kg:    {result.total_cost_per_kg:.2f}")
    return 0


def variant_cost(variant_id: str) -> int:
    analysis = analyze_variant_cost(variant_id, load_catalog_snapshot())

    print(f"Variant: {analysis.variant_name} ({analysis.fill_quantity:g} {analysis.fill_unit})")
    for component in analysis.cost_breakdown:
        print(f"  {component.name:<30} {component.cost:>10.2f}  {component.percentage:>6.2f}%")
    print(f"Tax included:   {analysis.total_tax_amount:.2f}")
    print(f"Cost per unit:  {analysis.total_cost_per_unit:.2f}")
    print(f"Selling price:  {analysis.selling_price_per_unit:.2f}")
    print(f"Margin:         {analysis.gross_profit_margin:.2f}% ({analysis.margin_status})")
    for warning in analysis.warnings:
        print(f"WARNING: {warning}")
    return 0


def batch_requirements(batch_id: str, by: Optional[str] = None) -> int:
    catalog = load_catalog_snapshot()
    batch = load_batch_record(batch_id)
    analysis = compute_batch_requirements(batch, catalog, build_inventory_snapshot())
    summary = overview(analysis)

    print(f"Batch: {analysis.batch_name}")
    if by == "supplier":
        for group in group_by_supplier(analysis):
            print(f"{group.supplier_name}  ({group.item_count} items, {group.total_cost:.2f})")
            for item in group.materials + group.packaging + group.labels:
                _print_item(item)
    elif by == "product":
        for group in group_by_product(analysis):
            print(f"{group.product_name}  ({group.total_cost:.2f})")
            for item in group.total_materials + group.total_packaging + group.total_labels:
                _print_item(item)
    else:
        for item in analysis.all_items:
            _print_item(item)

    print(
        f"{summary.total_items} items from {summary.supplier_count} suppliers, "
        f"estimated cost {summary.total_cost:.2f}"
    )
    for shortfall in analysis.shortfalls:
        print(
            f"SHORTFALL: {shortfall.item_name} ({shortfall.supplier_name}) needs "
            f"{shortfall.required:g}, has {shortfall.on_hand:g}, short {shortfall.shortfall:g}"
        )
    for item in analysis.items_without_inventory:
        print(f"NOT TRACKED: {item.item_name} ({item.supplier_name}) needs {item.required:g}")
    for ref in analysis.unresolved_references:
        print(f"UNRESOLVED: {ref.entity_type} {ref.entity_id} {ref.context}".rstrip())
    return 0


def _print_item(item) -> None:
    print(
        f"  {item.item_type:<10} {item.item_name:<30} {item.required_quantity:>10.3f} {item.unit:<4}"
        f" {item.estimated_cost:>10.2f}"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="costtracker",
        description=f"{APP_NAME} {APP_VERSION}",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init-db", help="Create the database and its tables")

    export_parser = subparsers.add_parser("export", help="Export all data")
    export_parser.add_argument("file", help="JSON file path")

    import_parser = subparsers.add_parser("import", help="Import all data")
    import_parser.add_argument("file", help="JSON file path")
    import_parser.add_argument(
        "--mode",
        choices=["merge", "replace"],
        default="merge",
        help="Import mode: 'merge' (default) adds new records, 'replace' clears existing data first",
    )

    recipe_parser = subparsers.add_parser("recipe-cost", help="Show a recipe's cost per kg")
    recipe_parser.add_argument("recipe_id")

    variant_parser = subparsers.add_parser("variant-cost", help="Show a variant's unit cost and margin")
    variant_parser.add_argument("variant_id")

    batch_parser = subparsers.add_parser("batch-requirements", help="Show what a batch needs")
    batch_parser.add_argument("batch_id")
    batch_parser.add_argument("--by", choices=["supplier", "product"], help="Group the requirements")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    configure_logging(args.verbose)
    initialize_app_database()

    try:
        if args.command == "init-db":
            print("Database ready")
            return 0
        elif args.command == "export":
            return export_all(args.file)
        elif args.command == "import":
            return import_all(args.file, mode=args.mode)
        elif args.command == "recipe-cost":
            return recipe_cost(args.recipe_id)
        elif args.command == "variant-cost":
            return variant_cost(args.variant_id)
        elif args.command == "batch-requirements":
            return batch_requirements(args.batch_id, by=args.by)
        else:
            print(f"Unknown command: {args.command}")
            return 1
    except (ServiceError, ImportVersionError, SQLAlchemyError, OSError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

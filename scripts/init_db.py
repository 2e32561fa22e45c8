#!/usr/bin/env python3
"""
Create (or drop and recreate) the pharmacy inventory schema.

Reads settings through pharmacy_config, so PHARMACY_DATABASE_URL /
DATABASE_URL override the configured database.

Usage:
  python3 scripts/init_db.py                  # create missing tables
  python3 scripts/init_db.py --drop           # drop everything, then create
  python3 scripts/init_db.py --drop-only      # drop everything
  python3 scripts/init_db.py --seed           # also add a demo category,
                                              # supplier and product
  python3 scripts/init_db.py --config my.yaml
"""

from __future__ import annotations

import argparse
import sys
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from pharmacy_config import get_active_config
from pharmacy_config.bridges import build_coordinator, build_database, configure_logging_from
from pharmacy_kernel.domain.dtos import NewProduct
from pharmacy_kernel.domain.values import DosageForm
from pharmacy_kernel.exceptions import PharmacyKernelError
from pharmacy_kernel.services.category_service import CategoryService
from pharmacy_kernel.services.supplier_service import SupplierService

# Actor recorded as creator of seeded products.
SEED_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create the pharmacy inventory schema")
    p.add_argument("--config", default=None, help="YAML settings file (default: packaged default.yaml)")
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--drop", action="store_true", help="Drop all tables before creating them")
    mode.add_argument("--drop-only", action="store_true", help="Drop all tables and exit")
    p.add_argument("--seed", action="store_true", help="Insert a small demo catalog")
    return p.parse_args(argv)


def _seed(database, settings) -> None:
    with database.session_scope() as session:
        category = CategoryService(session).create_category(
            "Analgesics", "Pain relief and fever reducers"
        )
        supplier = SupplierService(session).create_supplier(
            "Northwind Pharma", email="orders@northwind.example", phone="555-0100"
        )

    coordinator = build_coordinator(settings, database)
    product = coordinator.create_product(
        NewProduct(
            name="Paracetamol 500mg",
            generic_name="Acetaminophen",
            manufacturer="Northwind Labs",
            sku="PARA-500-24",
            price=Decimal("4.99"),
            cost_price=Decimal("2.10"),
            category_id=category.id,
            supplier_id=supplier.id,
            dosage_form=DosageForm.TABLET,
            strength="500mg",
            quantity=120,
        ),
        actor_id=SEED_ACTOR_ID,
    )
    print(f"  Seeded product {product.sku} with {product.quantity} units.")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    try:
        settings = get_active_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    configure_logging_from(settings)
    database = build_database(settings)

    try:
        if args.drop or args.drop_only:
            print("  Dropping tables...")
            database.drop_tables()
        if args.drop_only:
            print("  Done.")
            return 0

        print("  Creating tables...")
        database.create_tables()

        if args.seed:
            print("  Seeding demo catalog...")
            _seed(database, settings)
    except (SQLAlchemyError, PharmacyKernelError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        database.dispose()

    print("  Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

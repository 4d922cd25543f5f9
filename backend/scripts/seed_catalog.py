#!/usr/bin/env python3
"""
Seed categories, suppliers and sample products.

The JSON file (optional) may contain "categories", "suppliers" and "products"
lists; anything missing falls back to the built-in defaults below. Seeding is
idempotent: categories/suppliers are matched by name and products whose SKU
already exists are skipped.

Usage:
    python scripts/seed_catalog.py --file catalog.json
"""
import argparse
import json
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from inventory_api.db import SessionLocal, init_db
from inventory_api.models.category import Category
from inventory_api.models.supplier import Supplier
from inventory_api.services.product_service import (
    ConflictError,
    ProductService,
    ValidationError,
)

DEFAULT_CATEGORIES = ["Hardware", "Electronics", "Packaging"]
DEFAULT_SUPPLIERS = ["Acme Supply Co", "Globex Components"]
DEFAULT_PRODUCTS = [
    {"name": "Widget", "sku": "WID-001", "category": "Hardware", "supplier": "Acme Supply Co", "quantity": 25, "price": "9.99", "location": "A1"},
    {"name": "Gadget", "sku": "GAD-001", "category": "Electronics", "supplier": "Globex Components", "quantity": 10, "price": "24.50", "location": "B3"},
    {"name": "Shipping Box (M)", "sku": "BOX-M", "category": "Packaging", "supplier": None, "quantity": 200, "price": "0.80", "location": None},
]


def _ensure_named(db, model, names):
    ids = {}
    for name in names:
        row = db.query(model).filter(model.name == name).first()
        if not row:
            row = model(name=name)
            db.add(row)
            db.flush()
        ids[name] = row.id
    return ids


def seed(data: dict) -> int:
    init_db()

    db = SessionLocal()
    try:
        category_ids = _ensure_named(db, Category, data.get("categories") or DEFAULT_CATEGORIES)
        supplier_ids = _ensure_named(db, Supplier, data.get("suppliers") or DEFAULT_SUPPLIERS)
        db.commit()
    finally:
        db.close()

    svc = ProductService(SessionLocal)
    created = 0
    for entry in data.get("products") or DEFAULT_PRODUCTS:
        try:
            svc.add_product(
                name=entry.get("name"),
                sku=entry.get("sku"),
                category_id=category_ids.get(entry.get("category")),
                supplier_id=supplier_ids.get(entry.get("supplier")),
                quantity=entry.get("quantity", 0),
                price=entry.get("price", 0),
                location=entry.get("location"),
                actor="seed",
            )
            created += 1
        except ConflictError:
            continue
        except ValidationError as e:
            print(f"Skipping {entry!r}: {e}")
    return created


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the inventory catalog.")
    parser.add_argument("--file", default=None, help="JSON file with categories/suppliers/products")
    args = parser.parse_args()

    data = {}
    if args.file:
        with open(args.file, "r", encoding="utf-8") as f:
            data = json.load(f)
    n = seed(data)
    print(f"Seeded {n} products.")

#!/usr/bin/env python3
"""
Seed product groups and products from a JSON file.

Accepted shape:
    {"groups": [{"name": "Cookware", "description": "...",
                 "products": [{"name": "Steel Pot", "mrp": 499, "stock": 20,
                               "unit": "pcs", "cartons": 2}]}]}
A bare list of groups is accepted too. Groups are matched by name, products by
(group, name); existing rows are left alone so the script can be re-run.

Usage:
    python scripts/seed_catalog.py --file catalog.json
"""
import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone
from decimal import Decimal

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.config import settings
from app.db import SessionLocal, init_db
from app.models.product import Product
from app.models.product_group import ProductGroup

log = logging.getLogger("seed_catalog")


def _groups_from(data):
    if isinstance(data, dict):
        return data.get("groups") or []
    if isinstance(data, list):
        return data
    return []


def _count(value, default=0):
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return default


def seed_from_file(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise RuntimeError(f"Failed to parse JSON from {path}: {e}")

    init_db(reset=False)
    db = SessionLocal()
    created = {"groups": 0, "products": 0}
    try:
        for entry in _groups_from(data):
            name = (entry.get("name") or "").strip()
            if not name:
                continue
            group = db.query(ProductGroup).filter(ProductGroup.name == name).first()
            if not group:
                group = ProductGroup(name=name, description=entry.get("description"))
                db.add(group)
                db.flush()
                created["groups"] += 1

            for item in entry.get("products") or []:
                pname = (item.get("name") or "").strip()
                if not pname:
                    continue
                exists = (
                    db.query(Product)
                    .filter(Product.group_id == group.id, Product.name == pname)
                    .first()
                )
                if exists:
                    continue
                now = datetime.now(timezone.utc)
                db.add(
                    Product(
                        group_id=group.id,
                        name=pname,
                        mrp=Decimal(str(item.get("mrp") or "0.01")),
                        stock=_count(item.get("stock")),
                        unit=(item.get("unit") or settings.DEFAULT_UNIT).strip(),
                        cartons=_count(item.get("cartons")),
                        description=(item.get("description") or "").strip(),
                        created_at=now,
                        updated_at=now,
                    )
                )
                created["products"] += 1
        db.commit()
        log.info("Seeded %(groups)d group(s) and %(products)d product(s)", created)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
    return created


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", required=True, help="Path to catalog json")
    args = parser.parse_args()
    if not os.path.exists(args.file):
        print("File not found:", args.file)
        sys.exit(1)
    seed_from_file(args.file)

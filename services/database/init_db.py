#!/usr/bin/env python3
"""
Initialize the catalog matching database.

Usage:
    python -m services.database.init_db                      # Initialize with default path
    python -m services.database.init_db --path /custom/path/db.sqlite
    python -m services.database.init_db --check              # Just print table counts
    python -m services.database.init_db --seed-brands        # Copy known brands into the brands table
    python -m services.database.init_db --add-category "Mobile Phones"
"""

import argparse
import logging

from services.config import default_config
from services.database.db import Database
from standardization.brand_extractor import KNOWN_BRANDS
from standardization.name_normalizer import slugify

logger = logging.getLogger(__name__)


def print_counts(db: Database):
    for table, count in db.get_table_counts().items():
        print(f"  {table:<24} {count:>8}")


def main():
    parser = argparse.ArgumentParser(description='Initialize catalog matching database')
    parser.add_argument('--path', type=str, help='Custom database path')
    parser.add_argument('--check', action='store_true', help='Print table counts')
    parser.add_argument('--seed-brands', action='store_true', help='Seed the brands table')
    parser.add_argument('--add-category', type=str, metavar='NAME', help='Create a category')

    args = parser.parse_args()

    logging.basicConfig(
        level=default_config.log_level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S'
    )

    db_path = args.path or str(default_config.database.path)
    print(f"Database path: {db_path}")
    db = Database(db_path, timeout=default_config.database.timeout)

    if args.check:
        print_counts(db)
        return

    print("Initializing database schema...")
    db.init_schema()

    if args.seed_brands:
        with db.transaction():
            db.add_brands(sorted(KNOWN_BRANDS))
        print(f"Seeded {len(KNOWN_BRANDS)} brands")

    if args.add_category:
        with db.transaction():
            category_id = db.insert_category(args.add_category, slugify(args.add_category))
        print(f"Category created: {args.add_category} ({category_id})")

    print()
    print_counts(db)
    print("\n✅ Database initialized successfully!")


if __name__ == '__main__':
    main()

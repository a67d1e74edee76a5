"""
Direct catalog creation and offer statistics for the admin console.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from services.config import MatchingConfig
from services.database.db import Database
from services.database.models import CatalogCreate
from standardization.name_normalizer import slugify
from .errors import Conflict, NotFound, PersistenceError
from .keyword_indexer import build_keywords

logger = logging.getLogger(__name__)


def create_catalog_entry(db: Database, data: CatalogCreate, user_id: Optional[str],
                         config: Optional[MatchingConfig] = None) -> Dict[str, Any]:
    """
    Create a catalog entry with an admin-supplied brand and index its keywords.

    The brand is taken as given: None stays unresolved, '' means explicitly
    unbranded.

    Raises:
        NotFound: unknown category
        Conflict: an entry with the same name already exists in the category
        PersistenceError: the insert failed
    """
    config = config or MatchingConfig()

    if not db.category_exists(data.category_id):
        raise NotFound(f"Category not found: {data.category_id}")
    if db.find_catalog_by_name(data.name, data.category_id):
        raise Conflict("A catalog item with this name already exists in this category")

    try:
        with db.transaction():
            catalog_id = db.insert_catalog_entry({
                'name': data.name,
                'brand': data.brand,
                'model': data.model,
                'category_id': data.category_id,
                'base_description': data.base_description,
                'specifications': data.specifications,
                'images': data.images,
                'gtin': data.gtin,
                'mpn': data.mpn,
                'slug': slugify(data.name, config.slug_max_length),
                'created_by': user_id,
            })
            build_keywords(db, catalog_id, data.name, data.brand, config)
    except sqlite3.Error as e:
        logger.error(f"Error creating catalog item: {e}")
        raise PersistenceError("Failed to create catalog item", step="catalog") from e

    logger.info(f"Catalog entry created: {data.name!r} ({catalog_id})")
    return db.get_catalog_entry(catalog_id)


def offer_stats(offers: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Summarize a catalog entry's offers.

    Example:
        >>> offer_stats([{'price': 10.0, 'is_active': True, 'vendor_id': 'v1',
        ...               'inventory_quantity': 2, 'vendor_name': 'Acme'}])['best_price']
        10.0
    """
    active = [o for o in offers if o.get('is_active')]
    best = min(active, key=lambda o: o['price']) if active else None

    return {
        'total_offers': len(offers),
        'active_offers': len(active),
        'vendors_count': len({o.get('vendor_id') for o in offers}),
        'price_range': {
            'min': min(o['price'] for o in active),
            'max': max(o['price'] for o in active),
        } if active else None,
        'best_price': best['price'] if best else None,
        'best_vendor': best.get('vendor_name') if best else None,
        'total_inventory': sum(o.get('inventory_quantity') or 0 for o in active),
    }


def get_catalog_with_offers(db: Database, catalog_id: str) -> Dict[str, Any]:
    entry = db.get_catalog_entry(catalog_id)
    if entry is None:
        raise NotFound(f"Catalog entry not found: {catalog_id}")

    offers = db.get_offers(catalog_id)
    entry['product_offers'] = offers
    entry['offer_stats'] = offer_stats(offers)
    return entry

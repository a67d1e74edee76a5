"""
Keyword Indexer

Derives the weighted keyword set of a catalog entry from its name. The
keywords drive candidate lookup in the similarity matcher.
"""

import logging
from typing import List, Optional

from services.config import MatchingConfig
from services.database.db import Database
from services.database.models import KeywordEntry
from standardization.name_normalizer import normalize

logger = logging.getLogger(__name__)


def generate_keywords(catalog_id: str, name: str, brand: Optional[str],
                      config: Optional[MatchingConfig] = None) -> List[KeywordEntry]:
    """
    Build keyword entries for a name without persisting them.

    Example:
        >>> [(k.keyword, k.weight) for k in generate_keywords("c1", "Apple iPhone 13", "Apple")]
        [('apple', 3), ('iphone', 1)]
    """
    config = config or MatchingConfig()
    brand_token = brand.lower() if brand else None

    return [
        KeywordEntry(
            catalog_id=catalog_id,
            keyword=token,
            weight=config.brand_keyword_weight if token == brand_token else config.keyword_weight,
        )
        for token in normalize(name)[:config.max_keywords]
    ]


def build_keywords(db: Database, catalog_id: str, name: str, brand: Optional[str],
                   config: Optional[MatchingConfig] = None) -> List[KeywordEntry]:
    """
    Generate and batch-insert the keyword set for a new catalog entry.

    Not idempotent: calling twice for the same entry doubles its rows, so it
    must only run once, when the entry is created. The caller owns the
    transaction.
    """
    entries = generate_keywords(catalog_id, name, brand, config)
    if entries:
        db.insert_keywords([(e.catalog_id, e.keyword, e.weight) for e in entries])
    logger.debug(f"Indexed {len(entries)} keywords for catalog {catalog_id}")
    return entries

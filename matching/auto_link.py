"""
Auto-Link Decision Engine

Decides whether a product a vendor or admin is listing is an existing
catalog entry (link a new offer to it) or a new product (create the catalog
entry and its keyword index first), then creates the offer.

Paths:
1. Explicit catalog_id: link directly, no matching
2. force_new_catalog: always create
3. Otherwise: match at the auto-link threshold; link on a confident top
   candidate, create otherwise

Only path 3 ending in a link writes implicit feedback. Creating never does.
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from services.config import AppConfig, default_config
from services.database.db import Database
from services.database.models import LinkAction, MatchSuggestion, ProductData
from standardization.brand_extractor import extract_brand
from standardization.name_normalizer import slugify
from .errors import NotFound, PartialFailure, PersistenceError, ValidationError
from .feedback import FeedbackRecorder
from .keyword_indexer import build_keywords
from .similarity import SimilarityMatcher

logger = logging.getLogger(__name__)


@dataclass
class AutoLinkResult:
    action: LinkAction
    catalog_id: str
    offer_id: str
    product: Dict[str, Any]
    matched: Optional[MatchSuggestion] = None

    def to_response(self) -> Dict[str, Any]:
        return {
            'success': True,
            'action': self.action.value,
            'catalogId': self.catalog_id,
            'offerId': self.offer_id,
            'product': self.product,
        }


class AutoLinker:
    """
    Runs match → maybe-create-catalog → create-keywords → create-offer →
    maybe-record-feedback for one listing.
    """

    def __init__(self, db: Database, config: Optional[AppConfig] = None,
                 matcher: Optional[SimilarityMatcher] = None,
                 recorder: Optional[FeedbackRecorder] = None):
        self.db = db
        self.config = config or default_config
        self.matcher = matcher or SimilarityMatcher(db, self.config.matching)
        self.recorder = recorder or FeedbackRecorder(db)

    def auto_link(self, product_name: Optional[str], category_id: Optional[str],
                  product_data: Union[ProductData, Dict[str, Any], None],
                  user_id: Optional[str] = None, vendor_id: Optional[str] = None,
                  force_new_catalog: bool = False,
                  catalog_id: Optional[str] = None) -> AutoLinkResult:
        """
        Link or create, then create exactly one offer.

        Args:
            product_name: Name as typed by the vendor/admin
            category_id: Category the product is listed in
            product_data: Offer fields (price required)
            user_id: Acting user, stored as created_by and on feedback
            vendor_id: Owning vendor; None for admin-owned offers
            force_new_catalog: Skip matching and always create
            catalog_id: Link to this entry without matching

        Raises:
            ValidationError: product_name, category_id or product_data missing
            NotFound: unknown category or explicit catalog_id
            PersistenceError: catalog or offer insert failed
            PartialFailure: offer (or keywords) failed after the catalog entry was committed
        """
        product_name = (product_name or "").strip()
        if not product_name:
            raise ValidationError("productName is required", field="productName")
        if not category_id:
            raise ValidationError("categoryId is required", field="categoryId")
        if product_data is None:
            raise ValidationError("productData is required", field="productData")
        if isinstance(product_data, dict):
            try:
                product_data = ProductData.model_validate(product_data)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid productData: {e.errors()[0]['msg']}", field="productData") from e

        if not self.db.category_exists(category_id):
            raise NotFound(f"Category not found: {category_id}")

        matched: Optional[MatchSuggestion] = None
        target_id: Optional[str] = None

        if catalog_id and not force_new_catalog:
            if self.db.get_catalog_entry(catalog_id) is None:
                raise NotFound(f"Catalog entry not found: {catalog_id}")
            target_id = catalog_id
        elif not force_new_catalog:
            threshold = self.config.matching.auto_link_threshold
            suggestions = self.matcher.find_similar(product_name, category_id, threshold)
            if suggestions and suggestions[0].confidence_score >= threshold:
                matched = suggestions[0]
                target_id = matched.catalog_id

        if self.config.atomic_auto_link:
            result = self._run_atomic(product_name, category_id, product_data,
                                      user_id, vendor_id, target_id)
        else:
            result = self._run_best_effort(product_name, category_id, product_data,
                                           user_id, vendor_id, target_id)
        result.matched = matched

        if matched is not None:
            self.recorder.record_quietly(
                input_text=product_name,
                suggested_catalog_id=matched.catalog_id,
                user_choice=True,
                actual_catalog_id=matched.catalog_id,
                confidence_score=matched.confidence_score,
                category_id=category_id,
                user_id=user_id,
            )

        logger.info(f"auto-link {result.action.value}: {product_name!r} -> catalog "
                    f"{result.catalog_id}, offer {result.offer_id}")
        return result

    # ========================================
    # Execution strategies
    # ========================================

    def _run_atomic(self, product_name, category_id, product_data,
                    user_id, vendor_id, target_id) -> AutoLinkResult:
        """Catalog, keywords and offer commit together or not at all."""
        step = "catalog" if target_id is None else "offer"
        action = LinkAction.LINKED if target_id else LinkAction.CREATED
        try:
            with self.db.transaction():
                if target_id is None:
                    target_id, brand = self._insert_catalog(product_name, category_id, product_data, user_id)
                    step = "keywords"
                    self._index(target_id, product_name, brand)
                    step = "offer"
                offer_id = self._insert_offer(target_id, product_name, product_data, vendor_id)
        except sqlite3.Error as e:
            logger.error(f"auto-link failed at {step}: {e}")
            raise PersistenceError(f"Failed to create {_STEP_LABELS[step]}", step=step) from e

        return AutoLinkResult(action, target_id, offer_id, self.db.get_offer_with_catalog(offer_id))

    def _run_best_effort(self, product_name, category_id, product_data,
                         user_id, vendor_id, target_id) -> AutoLinkResult:
        """Each step commits on its own; failures after the catalog insert report the orphan."""
        action = LinkAction.LINKED
        created_id: Optional[str] = None

        if target_id is None:
            action = LinkAction.CREATED
            try:
                with self.db.transaction():
                    created_id, brand = self._insert_catalog(product_name, category_id, product_data, user_id)
            except sqlite3.Error as e:
                logger.error(f"Error creating catalog: {e}")
                raise PersistenceError("Failed to create catalog entry", step="catalog") from e
            target_id = created_id

            try:
                with self.db.transaction():
                    self._index(created_id, product_name, brand)
            except sqlite3.Error as e:
                logger.error(f"Error indexing keywords for {created_id}: {e}")
                raise PartialFailure("Failed to index catalog keywords", "keywords", created_id) from e

        try:
            with self.db.transaction():
                offer_id = self._insert_offer(target_id, product_name, product_data, vendor_id)
        except sqlite3.Error as e:
            logger.error(f"Error creating offer: {e}")
            if created_id:
                raise PartialFailure("Failed to create product offer", "offer", created_id) from e
            raise PersistenceError("Failed to create product offer", step="offer") from e

        return AutoLinkResult(action, target_id, offer_id, self.db.get_offer_with_catalog(offer_id))

    # ========================================
    # Steps
    # ========================================

    def _insert_catalog(self, product_name: str, category_id: str,
                        product_data: ProductData, user_id: Optional[str]) -> Tuple[str, Optional[str]]:
        brand = extract_brand(product_name, self.db.get_known_brands())
        catalog_id = self.db.insert_catalog_entry({
            'name': product_name,
            'brand': brand,
            'category_id': category_id,
            'base_description': product_data.description or '',
            'specifications': product_data.specifications or {},
            'images': product_data.images or [],
            'gtin': product_data.gtin,
            'mpn': product_data.mpn,
            'slug': slugify(product_name, self.config.matching.slug_max_length),
            'created_by': user_id,
            'is_active': True,
        })
        return catalog_id, brand

    def _index(self, catalog_id: str, product_name: str, brand: Optional[str]):
        build_keywords(self.db, catalog_id, product_name, brand, self.config.matching)

    def _insert_offer(self, catalog_id: str, product_name: str,
                      product_data: ProductData, vendor_id: Optional[str]) -> str:
        return self.db.insert_offer({
            'catalog_id': catalog_id,
            'vendor_id': vendor_id,
            'price': product_data.price,
            'compare_price': product_data.compare_price,
            'condition': product_data.condition.value,
            'color': product_data.color,
            'size': product_data.size,
            'storage': product_data.storage,
            'other_variants': product_data.other_variants or {},
            'sku': product_data.sku,
            'inventory_quantity': product_data.inventory_quantity or 0,
            'track_inventory': product_data.track_inventory is not False,
            'title': product_data.title or product_name,
            'description': product_data.description or '',
            'images': product_data.images or [],
            'is_active': True,
            'is_featured': bool(product_data.is_featured),
        })


_STEP_LABELS = {
    'catalog': 'catalog entry',
    'keywords': 'catalog keywords',
    'offer': 'product offer',
}

"""
Pydantic Models for Catalog Entities

These models are used for validation and serialization. Request bodies use
the camelCase field names the storefront and vendor portal send.
"""

from typing import Optional, List, Dict, Any
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict


class UserRole(str, Enum):
    ADMIN = "admin"
    VENDOR = "vendor"
    CUSTOMER = "customer"


class LinkAction(str, Enum):
    LINKED = "linked"
    CREATED = "created"


class OfferCondition(str, Enum):
    NEW = "new"
    REFURBISHED = "refurbished"
    USED = "used"


# ============================================
# Catalog Models
# ============================================

class KeywordEntry(BaseModel):
    catalog_id: str
    keyword: str = Field(..., min_length=3)
    weight: int = Field(1, ge=1)


class CatalogCreate(BaseModel):
    """Admin request to create a catalog entry directly."""
    name: str = Field(..., min_length=1)
    category_id: str = Field(..., min_length=1)
    brand: Optional[str] = None
    model: Optional[str] = None
    base_description: str = ""
    specifications: Dict[str, Any] = Field(default_factory=dict)
    images: List[str] = Field(default_factory=list)
    gtin: Optional[str] = None
    mpn: Optional[str] = None


# ============================================
# Offer Models
# ============================================

class ProductData(BaseModel):
    """Offer-level data sent alongside an auto-link request."""
    model_config = ConfigDict(populate_by_name=True)

    price: float = Field(..., ge=0)
    compare_price: Optional[float] = Field(None, ge=0, alias="comparePrice")
    condition: OfferCondition = OfferCondition.NEW
    color: Optional[str] = None
    size: Optional[str] = None
    storage: Optional[str] = None
    other_variants: Optional[Dict[str, Any]] = Field(None, alias="otherVariants")
    sku: Optional[str] = None
    inventory_quantity: Optional[int] = Field(None, ge=0, alias="inventoryQuantity")
    track_inventory: Optional[bool] = Field(None, alias="trackInventory")
    title: Optional[str] = None
    description: Optional[str] = None
    images: Optional[List[str]] = None
    is_featured: Optional[bool] = Field(None, alias="isFeatured")
    gtin: Optional[str] = None
    mpn: Optional[str] = None
    specifications: Optional[Dict[str, Any]] = None


class AutoLinkRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_name: Optional[str] = Field(None, alias="productName")
    category_id: Optional[str] = Field(None, alias="categoryId")
    force_new_catalog: bool = Field(False, alias="forceNewCatalog")
    catalog_id: Optional[str] = Field(None, alias="catalogId")
    product_data: ProductData = Field(..., alias="productData")


# ============================================
# Feedback Models
# ============================================

class FeedbackRequest(BaseModel):
    """Partial information is accepted on purpose: feedback is telemetry."""
    model_config = ConfigDict(populate_by_name=True)

    input_text: Optional[str] = Field(None, alias="inputText")
    suggested_catalog_id: Optional[str] = Field(None, alias="suggestedCatalogId")
    user_choice: Optional[bool] = Field(None, alias="userChoice")
    actual_catalog_id: Optional[str] = Field(None, alias="actualCatalogId")
    confidence_score: Optional[float] = Field(None, alias="confidenceScore")
    category_id: Optional[str] = Field(None, alias="categoryId")


# ============================================
# Suggestion Models
# ============================================

class MatchSuggestion(BaseModel):
    """Ranked candidate returned by the similarity matcher (not persisted)."""
    catalog_id: str
    name: str
    brand: Optional[str] = None
    model: Optional[str] = None
    category_name: Optional[str] = None
    confidence_score: float = Field(..., ge=0, le=1)
    match_reasons: List[str] = Field(default_factory=list)

    # Filled in by the suggestion service
    bestPrice: Optional[float] = None
    vendorCount: int = 0
    bestVendor: Optional[str] = None

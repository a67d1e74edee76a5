"""
Standardization Module

Text canonicalization shared by indexing and matching.

Key Components:
- NameNormalizer: Tokens, canonical text and slugs
- BrandExtractor: Brand lookup against the known brands reference set
"""

from .brand_extractor import extract_brand, KNOWN_BRANDS
from .name_normalizer import normalize, normalize_text, tokenize, slugify

__all__ = [
    # Brand extraction
    'extract_brand',
    'KNOWN_BRANDS',

    # Name normalization
    'normalize',
    'normalize_text',
    'tokenize',
    'slugify',
]

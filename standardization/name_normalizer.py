"""
Name Normalizer

Canonicalizes free-text product names for comparison.

Key functions:
1. normalize: Tokens used for keyword indexing and candidate lookup
2. normalize_text: Single canonical string for character-level similarity
3. slugify: URL slug for a catalog entry

Example:
    >>> normalize("Apple iPhone 13 Pro Max 256GB")
    ['apple', 'iphone', 'pro', 'max', '256gb']
    >>> slugify("Apple iPhone 13 Pro Max")
    'apple-iphone-13-pro-max'
"""

import re
from typing import List


# Anything that is not a lowercase ASCII letter, digit or whitespace
_NON_ALNUM = re.compile(r'[^a-z0-9\s]')
_WHITESPACE = re.compile(r'\s+')

MIN_TOKEN_LENGTH = 3


def normalize_text(text: str) -> str:
    """
    Lowercase, turn punctuation into separators and collapse whitespace.

    Example:
        >>> normalize_text("Coca-Cola  2L!")
        'coca cola 2l'
    """
    if not text:
        return ""

    cleaned = _NON_ALNUM.sub(' ', text.lower())
    return _WHITESPACE.sub(' ', cleaned).strip()


def tokenize(text: str, min_length: int = 1) -> List[str]:
    """Split normalized text into tokens of at least ``min_length`` characters, in order."""
    return [token for token in normalize_text(text).split(' ') if len(token) >= min_length]


def normalize(text: str) -> List[str]:
    """
    Tokens used for matching: lowercase alphanumeric, longer than two characters.

    Order and duplicates are preserved.

    Example:
        >>> normalize("Samsung Galaxy S23 - 128 GB")
        ['samsung', 'galaxy', 's23', '128']
    """
    return tokenize(text, MIN_TOKEN_LENGTH)


def slugify(name: str, max_length: int = 100) -> str:
    """
    Derive a stable slug from a product name.

    Non-alphanumeric characters are stripped (not replaced), whitespace runs
    become hyphens and the result is truncated.
    """
    if not name:
        return ""

    slug = re.sub(r'[^a-z0-9\s]', '', name.lower())
    slug = re.sub(r'\s+', '-', slug)
    return slug[:max_length]

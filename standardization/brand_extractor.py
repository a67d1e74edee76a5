"""
Brand Extractor

Identifies a brand in a free-text product name using a reference set of
known brands. Critical for catalog matching since vendors usually type the
brand into the product name.

Example:
    "Apple iPhone 13 Pro Max 256GB" → brand="Apple"
    "Sony WH-1000XM5 Headphones"    → brand="Sony"
    "Generic USB cable"             → brand=None
"""

from typing import Dict, Iterable, List, Optional, Set, Tuple

from .name_normalizer import tokenize


# === Known Brand Dictionary ===

ELECTRONICS_BRANDS: Set[str] = {
    # Phones & tablets
    'Apple', 'Samsung', 'Google', 'Xiaomi', 'Huawei', 'OnePlus', 'Oppo',
    'Vivo', 'Motorola', 'Nokia', 'Realme', 'Honor', 'Sony',

    # Computers
    'Lenovo', 'Dell', 'HP', 'Hewlett Packard', 'Asus', 'Acer', 'MSI',
    'Microsoft', 'Razer', 'Alienware',

    # Audio & TV
    'LG', 'Bose', 'JBL', 'Sennheiser', 'Beats', 'Philips', 'Panasonic',
    'TCL', 'Hisense', 'Bang & Olufsen', 'Marshall',

    # Gaming
    'Nintendo', 'PlayStation', 'Logitech', 'Corsair', 'SteelSeries', 'HyperX',

    # Cameras & wearables
    'Canon', 'Nikon', 'Fujifilm', 'GoPro', 'DJI', 'Garmin', 'Fitbit',

    # Storage & networking
    'SanDisk', 'Kingston', 'Seagate', 'Western Digital', 'TP-Link', 'Netgear',
    'Anker', 'Belkin',
}

HOME_BRANDS: Set[str] = {
    'Dyson', 'Bosch', 'Siemens', 'Miele', 'Whirlpool', 'Electrolux',
    'Tefal', 'Braun', 'Rowenta', 'Nespresso', "De'Longhi", 'KitchenAid',
    'IKEA',
}

FASHION_BRANDS: Set[str] = {
    'Nike', 'Adidas', 'Puma', 'Reebok', 'New Balance', 'Under Armour',
    "Levi's", 'Zara', 'H&M', 'Ray-Ban', 'Casio', 'Seiko',
}

KNOWN_BRANDS: Set[str] = ELECTRONICS_BRANDS | HOME_BRANDS | FASHION_BRANDS


def _brand_tokens(brand: str) -> Tuple[str, ...]:
    return tuple(tokenize(brand))


def build_brand_index(brands: Iterable[str]) -> Dict[Tuple[str, ...], str]:
    """
    Map each brand's token run to its canonical spelling.

    Example:
        >>> build_brand_index(['Western Digital'])
        {('western', 'digital'): 'Western Digital'}
    """
    index: Dict[Tuple[str, ...], str] = {}
    for brand in brands:
        tokens = _brand_tokens(brand)
        if tokens:
            index.setdefault(tokens, brand)
    return index


_DEFAULT_INDEX = build_brand_index(KNOWN_BRANDS)


def extract_brand(name: str, known_brands: Optional[Iterable[str]] = None) -> Optional[str]:
    """
    Extract brand from product name using the known brands reference set.

    Scans tokens left to right; at each position the longest brand wins.

    Args:
        name: Product name to search
        known_brands: Extra brands (e.g. from the brands table) on top of KNOWN_BRANDS

    Returns:
        Canonical brand name if found, None otherwise (never an empty string)

    Example:
        >>> extract_brand("Apple iPhone 13 Pro Max 256GB")
        'Apple'
        >>> extract_brand("WD Western Digital Blue 1TB")
        'Western Digital'
    """
    if not name:
        return None

    index = _DEFAULT_INDEX
    if known_brands:
        index = dict(_DEFAULT_INDEX)
        for tokens, brand in build_brand_index(known_brands).items():
            index.setdefault(tokens, brand)

    tokens = tokenize(name)
    if not tokens:
        return None

    longest = max(len(key) for key in index)
    for start in range(len(tokens)):
        for size in range(min(longest, len(tokens) - start), 0, -1):
            brand = index.get(tuple(tokens[start:start + size]))
            if brand:
                return brand

    return None


def brand_in_text(brand: Optional[str], text: str) -> bool:
    """True if the brand appears as a contiguous token run inside text."""
    if not brand:
        return False
    needle = _brand_tokens(brand)
    haystack: List[str] = tokenize(text)
    if not needle or len(needle) > len(haystack):
        return False
    return any(
        tuple(haystack[i:i + len(needle)]) == needle
        for i in range(len(haystack) - len(needle) + 1)
    )


def same_brand(first: Optional[str], second: Optional[str]) -> bool:
    """Case- and punctuation-insensitive brand comparison."""
    if not first or not second:
        return False
    return _brand_tokens(first) == _brand_tokens(second)

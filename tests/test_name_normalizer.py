import re

import pytest

from standardization.name_normalizer import normalize, normalize_text, slugify, tokenize


@pytest.mark.parametrize("name, expected", [
    ("Apple iPhone 13 Pro Max 256GB", ["apple", "iphone", "pro", "max", "256gb"]),
    ("Coca-Cola 2L", ["coca", "cola"]),
    ("  Sony   WH-1000XM5  ", ["sony", "1000xm5"]),
    ("TV 55\" OLED (2023)", ["oled", "2023"]),
    ("", []),
    ("a b cd", []),
])
def test_normalize(name, expected):
    assert normalize(name) == expected


@pytest.mark.parametrize("name", [
    "Samsung Galaxy S23 Ultra, 512 GB — Phantom Black!",
    "Crème brûlée torch «Pro»",
    "LG 65\" NanoCell 4K",
    "pro PRO Pro",
])
def test_normalize_yields_lowercase_alphanumeric_tokens_longer_than_two(name):
    tokens = normalize(name)
    assert all(re.fullmatch(r"[a-z0-9]{3,}", token) for token in tokens)
    # order of appearance is preserved
    assert tokens == [t for t in tokenize(name) if len(t) > 2]


def test_normalize_keeps_duplicates():
    assert normalize("pro PRO Pro") == ["pro", "pro", "pro"]


def test_tokenize_keeps_short_tokens():
    assert tokenize("LG 55 OLED") == ["lg", "55", "oled"]


def test_normalize_text():
    assert normalize_text("Apple  iPhone-13!") == "apple iphone 13"


@pytest.mark.parametrize("name, expected", [
    ("Apple iPhone 13 Pro Max", "apple-iphone-13-pro-max"),
    ("Coca-Cola 2L", "cocacola-2l"),
    ("Dyson V15 (Detect)", "dyson-v15-detect"),
])
def test_slugify(name, expected):
    assert slugify(name) == expected


def test_slugify_truncates_and_is_stable():
    name = "Very Long Product Name " * 10
    assert len(slugify(name)) == 100
    assert slugify(name) == slugify(name)

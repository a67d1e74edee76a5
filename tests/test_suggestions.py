import asyncio
import sqlite3

import httpx
import pytest

from matching.suggestions import HttpSuggestionFetcher, SessionState, SuggestionService, SuggestionSession
from services.config import MatchingConfig


@pytest.fixture
def service(db):
    return SuggestionService(db)


# ========================================
# Server side
# ========================================

def test_short_query_never_reaches_matcher(service, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("matcher must not be called")
    monkeypatch.setattr(service.matcher, "find_similar", fail)

    for query in (None, "", "a", "ab"):
        result = service.suggest(query)
        assert result.suggestions == []
        assert result.has_matches is False


def test_suggestions_enriched_with_best_offer(db, service, phones, accounts, add_catalog, add_offer):
    iphone = add_catalog("iPhone 13 Pro Max", phones, brand="Apple")
    add_offer(iphone, 1099.0)  # admin offer
    add_offer(iphone, 949.0, vendor_id=accounts["vendor"])
    add_offer(iphone, 499.0, is_active=False)

    result = service.suggest("Apple iPhone 13 Pro Max 256GB", phones)

    assert result.has_matches
    top = result.suggestions[0]
    assert top.catalog_id == iphone
    assert top.bestPrice == 949.0
    assert top.bestVendor == "Phone Planet"
    assert top.vendorCount == 2


def test_suggestion_without_offers(service, phones, add_catalog):
    add_catalog("Pixel 8 Pro", phones, brand="Google")
    top = service.suggest("Google Pixel 8 Pro", phones).suggestions[0]
    assert top.bestPrice is None
    assert top.bestVendor is None
    assert top.vendorCount == 0


def test_limit(service, phones, add_catalog):
    for storage in ("128GB", "256GB", "512GB", "1TB"):
        add_catalog(f"Galaxy S24 Ultra {storage}", phones, brand="Samsung")

    assert len(service.suggest("Samsung Galaxy S24 Ultra", phones, limit=2).suggestions) == 2
    assert len(service.suggest("Samsung Galaxy S24 Ultra", phones).suggestions) == 4


def test_enrichment_failure_is_isolated(db, service, phones, add_catalog, add_offer, monkeypatch):
    first = add_catalog("Galaxy S24 128GB", phones, brand="Samsung")
    second = add_catalog("Galaxy S24 256GB", phones, brand="Samsung")
    add_offer(first, 700.0)
    add_offer(second, 800.0)

    real_best_offer = db.get_best_offer

    def flaky_best_offer(catalog_id):
        if catalog_id == first:
            raise sqlite3.OperationalError("database is locked")
        return real_best_offer(catalog_id)
    monkeypatch.setattr(db, "get_best_offer", flaky_best_offer)

    by_id = {s.catalog_id: s for s in service.suggest("Samsung Galaxy S24", phones).suggestions}

    assert by_id[first].bestPrice is None
    assert by_id[first].vendorCount == 1
    assert by_id[second].bestPrice == 800.0


def test_matcher_failure_degrades_to_empty(service, monkeypatch):
    def fail(*args, **kwargs):
        raise sqlite3.OperationalError("no such table: product_keywords")
    monkeypatch.setattr(service.matcher, "find_similar", fail)

    result = service.suggest("iPhone 13")
    assert result.suggestions == []
    assert result.to_response() == {"suggestions": [], "query": "iPhone 13", "hasMatches": False}


# ========================================
# Client session
# ========================================

class ScriptedFetcher:
    """Answers each query after a per-query delay."""

    def __init__(self, delays=None, fail=()):
        self.delays = delays or {}
        self.fail = set(fail)
        self.calls = []

    async def __call__(self, query, category_id=None):
        self.calls.append(query)
        await asyncio.sleep(self.delays.get(query, 0))
        if query in self.fail:
            raise httpx.ConnectError("connection refused")
        return [{"catalog_id": f"match-for-{query}", "confidence_score": 0.9}]


def test_newer_query_wins_even_if_older_response_arrives_last():
    async def scenario():
        fetcher = ScriptedFetcher(delays={"iph": 0.2, "iphone": 0.01})
        session = SuggestionSession(fetcher, debounce_ms=0)

        session.search("ip")
        assert session.state == SessionState.EMPTY

        session.search("iph")
        await asyncio.sleep(0.05)  # "iph" is now in flight
        session.search("iphone")
        assert session.state == SessionState.QUERYING

        await session.wait()
        await asyncio.sleep(0.3)  # give the stale request every chance to land
        return session, fetcher

    session, fetcher = asyncio.run(scenario())

    assert session.state == SessionState.SUGGESTED
    assert session.query == "iphone"
    assert session.suggestions == [{"catalog_id": "match-for-iphone", "confidence_score": 0.9}]
    assert "ip" not in fetcher.calls


def test_debounce_collapses_rapid_keystrokes():
    async def scenario():
        fetcher = ScriptedFetcher()
        session = SuggestionSession(fetcher, debounce_ms=50)
        for query in ("iph", "ipho", "iphon", "iphone"):
            session.search(query)
            await asyncio.sleep(0.005)
        await session.wait()
        return session, fetcher

    session, fetcher = asyncio.run(scenario())

    assert fetcher.calls == ["iphone"]
    assert session.state == SessionState.SUGGESTED


def test_fetch_failure_degrades_to_empty():
    async def scenario():
        session = SuggestionSession(ScriptedFetcher(fail={"iphone"}), debounce_ms=0)
        session.search("iphone")
        await session.wait()
        return session

    session = asyncio.run(scenario())

    assert session.state == SessionState.EMPTY
    assert session.suggestions == []
    assert session.error


def test_clear_returns_to_idle_and_drops_pending_result():
    async def scenario():
        session = SuggestionSession(ScriptedFetcher(delays={"iphone": 0.05}), debounce_ms=0)
        session.search("iphone")
        await asyncio.sleep(0.01)
        session.clear()
        await asyncio.sleep(0.1)
        return session

    session = asyncio.run(scenario())

    assert session.state == SessionState.IDLE
    assert session.suggestions == []
    assert session.query == ""


def test_session_defaults_come_from_config():
    config = MatchingConfig(min_query_length=5, debounce_ms=120)
    session = SuggestionSession(ScriptedFetcher(), config=config)
    assert session.min_length == 5
    assert session.debounce_ms == 120


def http_fetcher(handler):
    return HttpSuggestionFetcher("http://catalog.test", "vendor-token",
                                 transport=httpx.MockTransport(handler))


def test_http_fetcher_sends_query_and_token():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"suggestions": [{"catalog_id": "c1"}], "hasMatches": True})

    result = asyncio.run(http_fetcher(handler)("iphone", "phones"))

    assert result == [{"catalog_id": "c1"}]
    assert seen["auth"] == "Bearer vendor-token"
    assert seen["params"] == {"q": "iphone", "limit": "5", "categoryId": "phones"}


@pytest.mark.parametrize("response", [
    httpx.Response(200, json=[{"catalog_id": "c1"}]),
    httpx.Response(200, json={"suggestions": "oops"}),
    httpx.Response(200, text="<html>gateway</html>"),
    httpx.Response(502, json={"error": "bad gateway"}),
])
def test_malformed_server_response_degrades_to_empty(response):
    async def scenario():
        session = SuggestionSession(http_fetcher(lambda request: response), debounce_ms=0)
        session.search("iphone")
        await session.wait()
        return session

    session = asyncio.run(scenario())

    assert session.state == SessionState.EMPTY
    assert session.suggestions == []
    assert session.error

"""
Suggestion Service

Live product suggestions while a vendor or admin types a product name.

Two halves:
- SuggestionService: server side. Queries the matcher at the loose
  suggestion threshold and enriches each hit with offer data.
- SuggestionSession: client side. Debounces keystrokes and guarantees that
  only the newest query's results are ever shown.

Session states:
    idle → querying → suggested | empty → idle (on clear)
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from services.config import MatchingConfig
from services.database.db import Database
from services.database.models import MatchSuggestion
from .similarity import SimilarityMatcher

logger = logging.getLogger(__name__)


@dataclass
class SuggestionResult:
    suggestions: List[MatchSuggestion] = field(default_factory=list)
    query: str = ""

    @property
    def has_matches(self) -> bool:
        return len(self.suggestions) > 0

    def to_response(self) -> Dict[str, Any]:
        return {
            'suggestions': [s.model_dump() for s in self.suggestions],
            'query': self.query,
            'hasMatches': self.has_matches,
        }


class SuggestionService:
    """Matcher + per-suggestion offer enrichment for the interactive path."""

    def __init__(self, db: Database, config: Optional[MatchingConfig] = None,
                 matcher: Optional[SimilarityMatcher] = None):
        self.db = db
        self.config = config or MatchingConfig()
        self.matcher = matcher or SimilarityMatcher(db, self.config)

    def suggest(self, query: Optional[str], category_id: Optional[str] = None,
                limit: Optional[int] = None) -> SuggestionResult:
        """
        Top suggestions for a partial product name.

        Queries shorter than the minimum length return no suggestions without
        consulting the matcher. Matcher failures degrade to no suggestions.
        """
        query = query or ""
        if len(query) < self.config.min_query_length:
            return SuggestionResult(query=query)

        if limit is None or limit < 1:
            limit = self.config.default_suggestion_limit

        try:
            matches = self.matcher.find_similar(query, category_id or None,
                                                self.config.suggestion_threshold)
        except sqlite3.Error as e:
            logger.error(f"Error getting suggestions: {e}")
            return SuggestionResult(query=query)

        return SuggestionResult(
            suggestions=[self._enrich(s) for s in matches[:limit]],
            query=query,
        )

    def _enrich(self, suggestion: MatchSuggestion) -> MatchSuggestion:
        """Attach best price, vendor count and best vendor; each lookup fails independently."""
        try:
            best = self.db.get_best_offer(suggestion.catalog_id)
            if best:
                suggestion.bestPrice = best['best_price']
                suggestion.bestVendor = best['vendor_name']
        except sqlite3.Error as e:
            logger.warning(f"Best offer lookup failed for {suggestion.catalog_id}: {e}")

        try:
            suggestion.vendorCount = self.db.count_active_offers(suggestion.catalog_id)
        except sqlite3.Error as e:
            logger.warning(f"Offer count failed for {suggestion.catalog_id}: {e}")

        return suggestion


# ========================================
# Client session
# ========================================

class SessionState(str, Enum):
    IDLE = "idle"
    QUERYING = "querying"
    SUGGESTED = "suggested"
    EMPTY = "empty"


Fetcher = Callable[[str, Optional[str]], Awaitable[List[Dict[str, Any]]]]


class HttpSuggestionFetcher:
    """Fetches suggestions from GET /products/suggestions."""

    def __init__(self, base_url: str, token: str, limit: int = 5, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.limit = limit
        self.timeout = timeout
        self.transport = transport

    async def __call__(self, query: str, category_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {'q': query, 'limit': str(self.limit)}
        if category_id:
            params['categoryId'] = category_id

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(
                f"{self.base_url}/products/suggestions",
                params=params,
                headers={'Authorization': f'Bearer {self.token}'},
            )
            response.raise_for_status()
            payload = response.json()

        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected suggestions payload: {type(payload).__name__}")
        suggestions = payload.get('suggestions') or []
        if not isinstance(suggestions, list):
            raise ValueError("Unexpected suggestions payload: 'suggestions' is not a list")
        return suggestions


class SuggestionSession:
    """
    Client-side suggestion state for one product input.

    Every search() bumps a generation counter and cancels the previous
    debounce/fetch task. A result is applied only if its generation is still
    current, so a slow early request can never overwrite a newer one.
    """

    def __init__(self, fetcher: Fetcher, category_id: Optional[str] = None,
                 config: Optional[MatchingConfig] = None,
                 min_length: Optional[int] = None, debounce_ms: Optional[int] = None):
        config = config or MatchingConfig()
        self.fetcher = fetcher
        self.category_id = category_id
        self.min_length = config.min_query_length if min_length is None else min_length
        self.debounce_ms = config.debounce_ms if debounce_ms is None else debounce_ms

        self.state = SessionState.IDLE
        self.query = ""
        self.suggestions: List[Dict[str, Any]] = []
        self.error: Optional[str] = None
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def has_matches(self) -> bool:
        return len(self.suggestions) > 0

    def search(self, query: str) -> Optional[asyncio.Task]:
        """Register a keystroke. Must be called from within a running event loop."""
        self._generation += 1
        self.query = query
        self._cancel_pending()

        if len(query) < self.min_length:
            self.suggestions = []
            self.state = SessionState.EMPTY
            return None

        self.state = SessionState.QUERYING
        self._task = asyncio.get_running_loop().create_task(self._run(query, self._generation))
        return self._task

    async def wait(self):
        """Wait for the current query, if any, to settle."""
        task = self._task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def clear(self):
        self._generation += 1
        self._cancel_pending()
        self.query = ""
        self.suggestions = []
        self.error = None
        self.state = SessionState.IDLE

    def _cancel_pending(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, query: str, generation: int):
        await asyncio.sleep(self.debounce_ms / 1000)
        if generation != self._generation:
            return

        try:
            suggestions = await self.fetcher(query, self.category_id)
            error = None
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Error fetching suggestions: {e}")
            suggestions, error = [], str(e) or 'Failed to fetch suggestions'

        if generation != self._generation:
            logger.debug(f"Discarding stale suggestions for {query!r}")
            return

        self.suggestions = suggestions
        self.error = error
        self.state = SessionState.SUGGESTED if suggestions else SessionState.EMPTY

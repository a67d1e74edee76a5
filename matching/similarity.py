"""
Similarity Matcher

Scores catalog candidates against a typed product name and returns them
ranked by confidence.

Signals:
1. Keyword overlap: weighted Dice coefficient between the query tokens and
   the candidate's stored keywords
2. Brand: the query's brand agrees with (or names) the candidate's brand
3. Name similarity: character-level ratio of the canonical names

score = (w_kw * overlap + w_brand * brand + w_name * name) / included weights

The brand signal is left out of the sum (not counted as zero) when there is no
brand evidence on either side, so unbranded products can still self-match.
"""

import logging
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Tuple

from services.config import MatchingConfig
from services.database.db import Database
from services.database.models import MatchSuggestion
from standardization.brand_extractor import extract_brand, brand_in_text, same_brand
from standardization.name_normalizer import normalize, normalize_text

logger = logging.getLogger(__name__)


@dataclass
class ScoreBreakdown:
    """Per-signal scores of one candidate"""
    keyword_overlap: float
    name_similarity: float
    brand: Optional[float] = None  # None = no brand evidence, left out
    confidence: float = 0.0
    reasons: List[str] = field(default_factory=list)


def query_weights(tokens: List[str], brand: Optional[str],
                  config: MatchingConfig) -> Dict[str, int]:
    """Weights for distinct query tokens, mirroring how keywords are weighted."""
    brand_token = brand.lower() if brand else None
    return {
        token: config.brand_keyword_weight if token == brand_token else config.keyword_weight
        for token in tokens
    }


def keyword_overlap(query: Dict[str, int], candidate: Dict[str, int]) -> float:
    """
    Weighted Dice coefficient of two keyword->weight maps.

    Example:
        >>> keyword_overlap({'apple': 3, 'iphone': 1}, {'iphone': 1})
        0.4
    """
    total = sum(query.values()) + sum(candidate.values())
    if total == 0:
        return 0.0
    shared = sum(min(weight, candidate[kw]) for kw, weight in query.items() if kw in candidate)
    return 2.0 * shared / total


def name_similarity(first: str, second: str) -> float:
    """Character-level similarity of the canonical forms of two names."""
    a, b = normalize_text(first), normalize_text(second)
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b).ratio()


def brand_signal(product_name: str, query_brand: Optional[str],
                 candidate_brand: Optional[str]) -> Optional[float]:
    """1.0 on agreement, 0.0 on conflict, None when there is nothing to compare."""
    if same_brand(query_brand, candidate_brand):
        return 1.0
    if brand_in_text(candidate_brand, product_name):
        return 1.0
    if query_brand and candidate_brand:
        return 0.0
    return None


def score_candidate(product_name: str, query: Dict[str, int], query_brand: Optional[str],
                    candidate: Dict, keywords: Dict[str, int],
                    config: MatchingConfig) -> ScoreBreakdown:
    """
    Combine the three signals for one candidate into a confidence in [0, 1].

    Shared keywords take the candidate's stored weight, so an entry indexed
    before its brand was known still matches its own name.
    """
    weights = config.weights
    aligned = {kw: keywords.get(kw, weight) for kw, weight in query.items()}
    breakdown = ScoreBreakdown(
        keyword_overlap=keyword_overlap(aligned, keywords),
        name_similarity=name_similarity(product_name, candidate['name']),
        brand=brand_signal(product_name, query_brand, candidate.get('brand')),
    )

    total = weights.keyword_overlap * breakdown.keyword_overlap \
        + weights.name_similarity * breakdown.name_similarity
    included = weights.keyword_overlap + weights.name_similarity
    if breakdown.brand is not None:
        total += weights.brand * breakdown.brand
        included += weights.brand

    score = total / included if included else 0.0
    breakdown.confidence = round(min(1.0, max(0.0, score)), 4)
    breakdown.reasons = match_reasons(product_name, candidate['name'], breakdown, config)
    return breakdown


def match_reasons(product_name: str, candidate_name: str, breakdown: ScoreBreakdown,
                  config: MatchingConfig) -> List[str]:
    reasons = []
    if normalize_text(product_name) == normalize_text(candidate_name):
        reasons.append("exact name match")
    if breakdown.brand == 1.0:
        reasons.append("brand match")
    if breakdown.keyword_overlap >= config.high_overlap_reason:
        reasons.append("high keyword overlap")
    elif breakdown.keyword_overlap >= config.partial_overlap_reason:
        reasons.append("partial keyword overlap")
    if breakdown.name_similarity >= config.similar_name_reason:
        reasons.append("similar name")
    return reasons


class SimilarityMatcher:
    """
    Ranks catalog entries by similarity to a product name.

    Every call reads the store fresh; there is no candidate cache.
    """

    def __init__(self, db: Database, config: Optional[MatchingConfig] = None):
        self.db = db
        self.config = config or MatchingConfig()

    def find_similar(self, product_name: str, category_id: Optional[str] = None,
                     threshold: Optional[float] = None) -> List[MatchSuggestion]:
        """
        Return candidates scoring at least ``threshold``, best first.

        Ties are broken by recency (newest first), then by id, so the same
        query over unchanged data always yields the same order. An empty list
        means no match; it is never an error.
        """
        if threshold is None:
            threshold = self.config.suggestion_threshold

        # Same cap as the keyword indexer
        tokens = normalize(product_name or "")[:self.config.max_keywords]
        if not tokens:
            return []

        query_brand = extract_brand(product_name, self.db.get_known_brands())
        query = query_weights(tokens, query_brand, self.config)

        candidates = self.db.find_candidates(list(query), category_id)
        if not candidates:
            return []
        keywords = self.db.get_keyword_weights([c['id'] for c in candidates])

        scored: List[Tuple[float, str, str, MatchSuggestion]] = []
        for candidate in candidates:
            breakdown = score_candidate(
                product_name, query, query_brand, candidate,
                keywords.get(candidate['id'], {}), self.config
            )
            if breakdown.confidence < threshold:
                continue

            reasons = list(breakdown.reasons)
            if category_id:
                reasons.append("same category")

            suggestion = MatchSuggestion(
                catalog_id=candidate['id'],
                name=candidate['name'],
                brand=candidate.get('brand'),
                model=candidate.get('model'),
                category_name=candidate.get('category_name'),
                confidence_score=breakdown.confidence,
                match_reasons=reasons,
            )
            scored.append((breakdown.confidence, candidate['created_at'], candidate['id'], suggestion))

        # score desc, created_at desc, id asc
        scored.sort(key=lambda item: item[2])
        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)

        logger.debug(f"find_similar({product_name!r}): {len(candidates)} candidates, "
                     f"{len(scored)} above {threshold}")
        return [item[3] for item in scored]

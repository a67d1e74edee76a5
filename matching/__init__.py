"""
Catalog Matching Module

Catalog deduplication: similarity matching, auto-linking, feedback.
"""

from .auto_link import AutoLinker, AutoLinkResult
from .feedback import FeedbackRecorder
from .keyword_indexer import build_keywords, generate_keywords
from .similarity import SimilarityMatcher
from .suggestions import SuggestionService, SuggestionSession

__all__ = [
    'AutoLinker',
    'AutoLinkResult',
    'FeedbackRecorder',
    'build_keywords',
    'generate_keywords',
    'SimilarityMatcher',
    'SuggestionService',
    'SuggestionSession',
]

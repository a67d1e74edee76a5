# Database module
from .db import Database, get_db
from .models import KeywordEntry, MatchSuggestion, OfferCondition, ProductData

__all__ = ['Database', 'get_db', 'KeywordEntry', 'MatchSuggestion', 'OfferCondition', 'ProductData']

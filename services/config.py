"""
Catalog Matching Configuration

Central configuration for matching thresholds, scoring weights and storage.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "catalog.db"


@dataclass
class ScoringWeights:
    """Weighted-sum components of a candidate's confidence"""
    keyword_overlap: float = 0.5
    brand: float = 0.3
    name_similarity: float = 0.2


@dataclass
class MatchingConfig:
    """Thresholds and limits for matching and linking"""
    auto_link_threshold: float = 0.95    # Unsupervised linking
    suggestion_threshold: float = 0.5    # Human in the loop
    min_query_length: int = 3
    default_suggestion_limit: int = 5
    max_keywords: int = 10
    brand_keyword_weight: int = 3
    keyword_weight: int = 1
    slug_max_length: int = 100
    debounce_ms: int = 300

    # Cut-offs for human-readable match reasons
    high_overlap_reason: float = 0.75
    partial_overlap_reason: float = 0.4
    similar_name_reason: float = 0.8

    weights: ScoringWeights = field(default_factory=ScoringWeights)


@dataclass
class DatabaseConfig:
    """SQLite storage settings"""
    path: Path = DEFAULT_DB_PATH
    timeout: float = 30.0


@dataclass
class AppConfig:
    """Main application configuration"""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)

    # Wrap catalog creation, keyword indexing and offer creation in one transaction
    atomic_auto_link: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build configuration, letting CATALOG_* environment variables override defaults."""
        config = cls()
        db_path = os.environ.get("CATALOG_DB_PATH")
        if db_path:
            config.database.path = Path(db_path)
        atomic = os.environ.get("CATALOG_ATOMIC_AUTO_LINK")
        if atomic is not None:
            config.atomic_auto_link = atomic.strip().lower() not in ("0", "false", "no")
        config.log_level = os.environ.get("CATALOG_LOG_LEVEL", config.log_level).upper()
        return config


# Default configuration instance
default_config = AppConfig.from_env()

"""Tier Selector Module — price-stratified listing selection per category.

Filters a noisy pool of marketplace listings for one product category and
assigns up to three of them to the essential / premium / luxury tiers.
"""

from .brand_extractor import BrandExtractor
from .candidate_filter import CandidateFilter, derive_core_terms
from .deduplicator import canonical_url, dedupe_across_categories, unique_listings
from .engine import TierSelectionEngine
from .models import (
    TIERS,
    CandidateListing,
    FilterReport,
    QualityBar,
    SelectionContext,
    TierAssignment,
    TierSelectionResult,
)
from .price_normalizer import parse_count, parse_price, parse_rating
from .selector import TierSelector
from .selector_config import SelectorConfig

__all__ = [
    "TIERS",
    "BrandExtractor",
    "CandidateFilter",
    "CandidateListing",
    "FilterReport",
    "QualityBar",
    "SelectionContext",
    "SelectorConfig",
    "TierAssignment",
    "TierSelectionEngine",
    "TierSelectionResult",
    "TierSelector",
    "canonical_url",
    "dedupe_across_categories",
    "derive_core_terms",
    "parse_count",
    "parse_price",
    "parse_rating",
    "unique_listings",
]

"""Selector configuration for tiered product selection.

Loads brand dictionaries, exclusion keywords and quality thresholds from
a YAML file under config/. Everything the filter and the selector treat as
data lives here so tests can substitute minimal fixtures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .models import QualityBar

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_PATH = _PROJECT_ROOT / "config" / "selector.yaml"


@dataclass
class SelectorConfig:
    """Filter and selection settings for the tier selector."""

    # Candidate filter
    marketplace_domain: str = "amazon.com"
    exclude_keywords: list[str] = field(default_factory=list)
    media_keywords: list[str] = field(default_factory=list)
    book_category_markers: list[str] = field(default_factory=lambda: ["book"])
    bulk_patterns: list[str] = field(default_factory=list)
    filter_floor: QualityBar = QualityBar(min_rating=3.0, min_reviews=5)
    require_title_relevance: bool = True
    generic_modifiers: list[str] = field(default_factory=list)

    # Brand extraction
    known_brands: list[str] = field(default_factory=list)
    generic_lead_words: list[str] = field(default_factory=list)

    # Tier selection
    essential_bar: QualityBar = QualityBar(min_rating=3.5, min_reviews=10)
    premium_bar: QualityBar = QualityBar(min_rating=3.8, min_reviews=15)
    luxury_bar: QualityBar = QualityBar(min_rating=4.0, min_reviews=25)
    luxury_relaxed_min_rating: float = 4.0
    luxury_price_separation: float = 1.2
    anchor_brand_bonus: float = 0.5
    persona_bias: float = 0.2
    persona_age_keywords: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, path: str | Path) -> SelectorConfig:
        """Load selector config from a YAML file.

        Args:
            path: Path to YAML file (absolute or relative to project root).

        Returns:
            SelectorConfig instance. Missing keys keep their defaults.
        """
        p = Path(path)
        if not p.is_absolute():
            p = _PROJECT_ROOT / p
        with open(p, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> SelectorConfig:
        defaults = cls()
        filt = data.get("filter", {})
        brands = data.get("brands", {})
        tiers = data.get("tiers", {})
        persona = data.get("persona", {})

        def bar(section: dict, fallback: QualityBar) -> QualityBar:
            if not section:
                return fallback
            return QualityBar(
                min_rating=float(section.get("min_rating", fallback.min_rating)),
                min_reviews=int(section.get("min_reviews", fallback.min_reviews)),
            )

        luxury = tiers.get("luxury", {})
        return cls(
            marketplace_domain=filt.get("marketplace_domain", defaults.marketplace_domain),
            exclude_keywords=[k.lower() for k in filt.get("exclude_keywords", [])],
            media_keywords=[k.lower() for k in filt.get("media_keywords", [])],
            book_category_markers=[
                k.lower()
                for k in filt.get("book_category_markers", defaults.book_category_markers)
            ],
            bulk_patterns=list(filt.get("bulk_patterns", [])),
            filter_floor=bar(filt.get("quality_floor", {}), defaults.filter_floor),
            require_title_relevance=bool(
                filt.get("require_title_relevance", defaults.require_title_relevance)
            ),
            generic_modifiers=[k.lower() for k in filt.get("generic_modifiers", [])],
            known_brands=list(brands.get("known", [])),
            generic_lead_words=list(brands.get("generic_lead_words", [])),
            essential_bar=bar(tiers.get("essential", {}), defaults.essential_bar),
            premium_bar=bar(tiers.get("premium", {}), defaults.premium_bar),
            luxury_bar=bar(luxury, defaults.luxury_bar),
            luxury_relaxed_min_rating=float(
                luxury.get("relaxed_min_rating", defaults.luxury_relaxed_min_rating)
            ),
            luxury_price_separation=float(
                luxury.get("price_separation", defaults.luxury_price_separation)
            ),
            anchor_brand_bonus=float(
                tiers.get("anchor_brand_bonus", defaults.anchor_brand_bonus)
            ),
            persona_bias=float(persona.get("bias", defaults.persona_bias)),
            persona_age_keywords={
                band.lower(): [w.lower() for w in words]
                for band, words in persona.get("age_keywords", {}).items()
            },
        )

    @classmethod
    def load_default(cls) -> SelectorConfig:
        """Load config/selector.yaml, falling back to built-in defaults."""
        if DEFAULT_CONFIG_PATH.exists():
            return cls.from_yaml(DEFAULT_CONFIG_PATH)
        logger.warning(
            "Selector config not found at %s, using built-in defaults",
            DEFAULT_CONFIG_PATH,
        )
        return cls()

"""Shared test fixtures for the starter kit engine."""

import itertools
import json
import sys
from pathlib import Path

import pytest

# Ensure src is importable
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.kit_engine.tier_selector.models import CandidateListing, QualityBar
from src.kit_engine.tier_selector.selector_config import SelectorConfig


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the test fixtures directory."""
    return PROJECT_ROOT / "tests" / "fixtures"


@pytest.fixture
def search_response(fixtures_dir: Path) -> dict:
    """Raw marketplace search API response for 'yoga Yoga Mat'."""
    with open(fixtures_dir / "search_response.json", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def selector_config() -> SelectorConfig:
    """Minimal selector config: small keyword lists and default-style quality bars."""
    return SelectorConfig(
        exclude_keywords=["refurbished", "renewed", "used", "replacement part"],
        media_keywords=["paperback", "dvd", "book"],
        bulk_patterns=[
            r"\b\d+\s*-?\s*pack\b",
            r"\bpack\s+of\s+\d+\b",
            r"\bbulk\b",
        ],
        generic_modifiers=["set", "kit", "for", "beginner", "beginners", "starter"],
        known_brands=["DeWalt", "Makita", "Manduka", "Gaiam", "The North Face"],
        generic_lead_words=["The", "Pro", "Professional", "Premium", "Set"],
        essential_bar=QualityBar(3.5, 10),
        premium_bar=QualityBar(3.8, 15),
        luxury_bar=QualityBar(4.0, 20),
        persona_age_keywords={"kids": ["kids", "youth"], "senior": ["senior"]},
    )


@pytest.fixture
def make_listing():
    """Factory for CandidateListing with unique marketplace urls.

    Usage:
        a = make_listing("Gaiam Yoga Mat", 10, rating=4.5, reviews=50)
    """
    counter = itertools.count(1)

    def _make(
        title: str,
        price: float | str | None,
        rating: float | str = 4.5,
        reviews: int | str = 100,
        url: str | None = None,
        image_url: str = "https://m.media-amazon.com/images/I/sample.jpg",
    ) -> CandidateListing:
        n = next(counter)
        if isinstance(price, (int, float)):
            price_text = f"${price:,.2f}"
        else:
            price_text = price or ""
        return CandidateListing(
            title=title,
            image_url=image_url,
            price_text=price_text,
            url=url or f"https://www.amazon.com/dp/B{n:09d}",
            rating_text=str(rating),
            review_count_text=str(reviews),
            position=n,
        )

    return _make

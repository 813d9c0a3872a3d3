"""Data models for the tier selector module.

All models use @dataclass with to_dict() for JSON serialization,
matching the established kit engine pattern.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any

from src.common.models import PersonaHints

from .price_normalizer import format_price, parse_count, parse_price, parse_rating

# Tier names in selection-output order
TIERS = ("essential", "premium", "luxury")


@dataclass
class CandidateListing:
    """A raw marketplace listing before filtering.

    Numeric fields are derived once from the listing's text fields.
    ``position`` is the listing's index in the acquisition response and is
    the final tie-breaker wherever two listings otherwise compare equal.
    """

    title: str
    image_url: str
    price_text: str
    url: str
    rating_text: str = ""
    review_count_text: str = ""
    position: int = 0
    brand: str | None = None
    normalized_price: float = field(init=False)
    rating: float = field(init=False)
    review_count: int = field(init=False)

    def __post_init__(self) -> None:
        self.title = (self.title or "").strip()
        self.image_url = (self.image_url or "").strip()
        self.price_text = (self.price_text or "").strip()
        self.url = (self.url or "").strip()
        self.normalized_price = parse_price(self.price_text)
        self.rating = parse_rating(self.rating_text)
        self.review_count = parse_count(self.review_count_text)

    @classmethod
    def from_api(cls, record: dict[str, Any], position: int = 0) -> CandidateListing:
        """Build a listing from a marketplace search API product record."""
        return cls(
            title=str(record.get("product_title") or ""),
            image_url=str(record.get("product_photo") or ""),
            price_text=str(record.get("product_price") or ""),
            url=str(record.get("product_url") or ""),
            rating_text=str(record.get("product_star_rating") or ""),
            review_count_text=str(record.get("product_num_ratings") or ""),
            position=position,
        )

    @property
    def has_price(self) -> bool:
        return not math.isinf(self.normalized_price)

    @property
    def display_price(self) -> str:
        return format_price(self.price_text, self.normalized_price)

    def meets(self, bar: QualityBar) -> bool:
        """True if rating and review count both reach the bar."""
        return self.rating >= bar.min_rating and self.review_count >= bar.min_reviews

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "url": self.url,
            "image_url": self.image_url,
            "price": self.price_text,
            "normalized_price": None if not self.has_price else self.normalized_price,
            "rating": self.rating,
            "review_count": self.review_count,
            "brand": self.brand,
        }


@dataclass(frozen=True)
class QualityBar:
    """Minimum rating and review count a listing must reach."""

    min_rating: float = 0.0
    min_reviews: int = 0

    def to_dict(self) -> dict:
        return {"min_rating": self.min_rating, "min_reviews": self.min_reviews}


@dataclass
class SelectionContext:
    """What the selector knows about the request for one category."""

    product_type: str
    base_keywords: str = ""
    price_floor: float | None = None
    price_ceiling: float | None = None
    persona: PersonaHints | None = None

    @property
    def query(self) -> str:
        """Marketplace search query: activity keywords + category label."""
        return " ".join(f"{self.base_keywords} {self.product_type}".split())


@dataclass
class TierAssignment:
    """One listing assigned to one tier."""

    tier: str  # essential | premium | luxury
    listing: CandidateListing
    strategy: str  # name of the selection strategy that produced it
    selection_reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "tier": self.tier,
            "strategy": self.strategy,
            "listing": self.listing.to_dict(),
            "selection_reasons": self.selection_reasons,
        }


@dataclass
class FilterReport:
    """Counts of listings rejected by the candidate filter, per reason."""

    total: int = 0
    accepted: int = 0
    rejections: dict[str, int] = field(default_factory=dict)

    def reject(self, reason: str) -> None:
        self.rejections[reason] = self.rejections.get(reason, 0) + 1

    @property
    def rejected(self) -> int:
        return sum(self.rejections.values())

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "accepted": self.accepted,
            "rejections": dict(sorted(self.rejections.items())),
        }


@dataclass
class TierSelectionResult:
    """Output of the selector for one category."""

    product_type: str
    assignments: list[TierAssignment]
    candidate_pool_size: int = 0
    filtered_pool_size: int = 0
    filter_report: FilterReport | None = None

    def get(self, tier: str) -> TierAssignment | None:
        return next((a for a in self.assignments if a.tier == tier), None)

    @property
    def tiers(self) -> list[str]:
        return [a.tier for a in self.assignments]

    @property
    def urls(self) -> list[str]:
        return [a.listing.url for a in self.assignments]

    def to_dict(self) -> dict:
        return {
            "product_type": self.product_type,
            "candidate_pool_size": self.candidate_pool_size,
            "filtered_pool_size": self.filtered_pool_size,
            "filter_report": self.filter_report.to_dict() if self.filter_report else None,
            "assignments": [a.to_dict() for a in self.assignments],
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2, default=str)

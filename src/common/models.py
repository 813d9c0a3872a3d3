"""Shared Pydantic data models for the starter kit service.

These models define the output contract of a kit: one group per product
type, each holding up to three tier records. All modules import from here.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class Tier(str, Enum):
    """Price/quality positioning within a product type."""
    ESSENTIAL = "essential"
    PREMIUM = "premium"
    LUXURY = "luxury"


TIER_RANK = {Tier.ESSENTIAL: 1, Tier.PREMIUM: 2, Tier.LUXURY: 3}


class PersonaHints(BaseModel):
    """Optional persona details. Only bias scoring, never filter."""
    age_band: str = ""
    experience_level: str = ""


class TierProduct(BaseModel):
    """A single tier record as returned to the caller."""
    name: str
    link: str
    image: str
    price: str = Field(description="Formatted display price")
    rating: float = Field(ge=0, le=5)
    reviews: int = Field(ge=0)
    tier: Tier
    reason_for_inclusion: str = ""


class ProductTypeGroup(BaseModel):
    """All tier records selected for one product type."""
    product_type: str
    explanation: str = ""
    tiers: list[TierProduct] = []

    @field_validator("tiers")
    @classmethod
    def _order_by_tier(cls, tiers: list[TierProduct]) -> list[TierProduct]:
        return sorted(tiers, key=lambda t: TIER_RANK[t.tier])

    @property
    def tier_names(self) -> list[str]:
        return [t.tier.value for t in self.tiers]

    def get(self, tier: Tier | str) -> TierProduct | None:
        wanted = Tier(tier)
        return next((t for t in self.tiers if t.tier == wanted), None)


class StarterKit(BaseModel):
    """Full kit for an activity: the main output contract."""
    activity: str
    generated_at: datetime
    groups: list[ProductTypeGroup] = []

    @property
    def links(self) -> list[str]:
        return [t.link for g in self.groups for t in g.tiers]

"""Selection strategies for each tier.

A strategy is a pure function ``(pool, state) -> CandidateListing | None``.
``pool`` holds the listings not yet assigned, sorted ascending by price;
``state`` carries the request context, configuration and the tiers picked
so far. Each tier tries its strategies in order and takes the first pick,
so every fallback step can be tested on its own.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

from .brand_extractor import BrandExtractor
from .models import CandidateListing, SelectionContext
from .selector_config import SelectorConfig

logger = logging.getLogger(__name__)

_BEGINNER_LEVELS = {"beginner", "novice", "new", "first-timer"}
_ADVANCED_LEVELS = {"advanced", "expert", "professional", "pro"}


@dataclass
class SelectionState:
    """Tiers chosen so far plus everything strategies need to decide."""

    context: SelectionContext
    config: SelectorConfig
    brands: BrandExtractor
    essential: CandidateListing | None = None
    premium: CandidateListing | None = None
    luxury: CandidateListing | None = None
    anchor_brand: str | None = None

    def shares_anchor_brand(self, listing: CandidateListing) -> bool:
        return self.brands.same_brand(listing.brand, self.anchor_brand)


Strategy = Callable[[list[CandidateListing], SelectionState], "CandidateListing | None"]


def _most_expensive_first(pool: list[CandidateListing]) -> list[CandidateListing]:
    return sorted(
        pool,
        key=lambda c: (-c.normalized_price, -c.rating, -c.review_count, c.position),
    )


def _above_essential(
    listing: CandidateListing, state: SelectionState, factor: float = 1.0
) -> bool:
    if state.essential is None:
        return True
    return listing.normalized_price > state.essential.normalized_price * factor


# ---------------------------------------------------------------------------
# Essential
# ---------------------------------------------------------------------------


def cheapest_meeting_essential_bar(
    pool: list[CandidateListing], state: SelectionState
) -> CandidateListing | None:
    """Cheapest listing that reaches the essential quality bar."""
    bar = state.config.essential_bar
    return next((c for c in pool if c.meets(bar)), None)


def cheapest_available(
    pool: list[CandidateListing], state: SelectionState
) -> CandidateListing | None:
    """Last resort: the globally cheapest listing, whatever its rating."""
    return pool[0] if pool else None


# ---------------------------------------------------------------------------
# Luxury
# ---------------------------------------------------------------------------


def strict_luxury(
    pool: list[CandidateListing], state: SelectionState
) -> CandidateListing | None:
    """Most expensive listing meeting the strict bar and price separation.

    A listing sharing the anchor brand wins over a pricier one that does not.
    """
    config = state.config
    qualifying = [
        c
        for c in _most_expensive_first(pool)
        if c.meets(config.luxury_bar)
        and _above_essential(c, state, config.luxury_price_separation)
    ]
    if not qualifying:
        return None
    if state.anchor_brand:
        same_brand = next((c for c in qualifying if state.shares_anchor_brand(c)), None)
        if same_brand:
            return same_brand
    return qualifying[0]


def highest_rated_above_essential(
    pool: list[CandidateListing], state: SelectionState
) -> CandidateListing | None:
    """Best-rated listing priced above essential, under the relaxed rating bar."""
    eligible = [
        c
        for c in pool
        if c.rating >= state.config.luxury_relaxed_min_rating
        and _above_essential(c, state)
    ]
    return min(
        eligible,
        key=lambda c: (-c.rating, -c.review_count, -c.normalized_price, c.position),
        default=None,
    )


def most_expensive_above_essential(
    pool: list[CandidateListing], state: SelectionState
) -> CandidateListing | None:
    """Last resort: the priciest remaining listing above essential, any rating."""
    return next(
        (c for c in _most_expensive_first(pool) if _above_essential(c, state)),
        None,
    )


# ---------------------------------------------------------------------------
# Premium
# ---------------------------------------------------------------------------


def _age_band_key(age_band: str) -> str:
    """Map '8', '8-12', 'kids', 'Senior (65+)' style input to a keyword band."""
    band = age_band.strip().lower()
    if not band:
        return ""
    match = re.search(r"\d+", band)
    if match:
        age = int(match.group(0))
        if age < 13:
            return "kids"
        if age < 18:
            return "teen"
        if age >= 65:
            return "senior"
        return "adult"
    for key in ("kids", "teen", "senior"):
        if key in band or band in key:
            return key
    return band


def persona_bias(listing: CandidateListing, state: SelectionState) -> float:
    """Small score adjustment from persona hints. Never excludes a listing.

    Beginners lean toward the cheaper end of the essential-luxury span,
    advanced users toward the pricier end; titles matching the age band's
    keywords get a bonus.
    """
    persona = state.context.persona
    if persona is None:
        return 0.0

    weight = state.config.persona_bias
    bias = 0.0

    level = (persona.experience_level or "").strip().lower()
    if level in _BEGINNER_LEVELS or level in _ADVANCED_LEVELS:
        low = state.essential.normalized_price if state.essential else None
        high = state.luxury.normalized_price if state.luxury else None
        position = 0.5
        if low is not None and high is not None and high > low:
            position = (listing.normalized_price - low) / (high - low)
            position = min(max(position, 0.0), 1.0)
        bias += weight * (1.0 - position if level in _BEGINNER_LEVELS else position)

    if persona.age_band:
        keywords = state.config.persona_age_keywords.get(_age_band_key(persona.age_band), [])
        title = listing.title.lower()
        if any(re.search(rf"(?<![a-z0-9]){re.escape(k)}(?![a-z0-9])", title) for k in keywords):
            bias += weight

    return bias


def premium_score(listing: CandidateListing, state: SelectionState) -> float:
    """Rating, plus a fixed bonus for the anchor brand, plus persona bias."""
    score = listing.rating
    if state.shares_anchor_brand(listing):
        score += state.config.anchor_brand_bonus
    return score + persona_bias(listing, state)


def premium_price_ok(listing: CandidateListing, state: SelectionState) -> bool:
    """Premium sits strictly between essential and luxury.

    With a single neighbour, premium must be priced on the correct side of
    it and differ from it; with none, any price is fine.
    """
    price = listing.normalized_price
    if state.essential is not None and price <= state.essential.normalized_price:
        return False
    if state.luxury is not None and price >= state.luxury.normalized_price:
        return False
    return True


def best_scoring_premium(
    pool: list[CandidateListing], state: SelectionState
) -> CandidateListing | None:
    """Highest-scoring listing meeting the mid bar that keeps price order.

    Candidates are tried best-first; one that would break the ordering is
    discarded in favour of the next best.
    """
    bar = state.config.premium_bar
    ranked = sorted(
        (c for c in pool if c.meets(bar)),
        key=lambda c: (
            -premium_score(c, state),
            -c.rating,
            -c.review_count,
            c.normalized_price,
            c.position,
        ),
    )
    for candidate in ranked:
        if premium_price_ok(candidate, state):
            return candidate
        logger.debug(
            "Premium candidate breaks price order, trying next: %s (%s)",
            candidate.title[:60],
            candidate.display_price,
        )
    return None


# ---------------------------------------------------------------------------
# Backfill
# ---------------------------------------------------------------------------


def _backfill_price_ok(listing: CandidateListing, state: SelectionState, tier: str) -> bool:
    """Non-strict ordering against whichever neighbours already exist."""
    price = listing.normalized_price
    lower: list[CandidateListing | None] = []
    upper: list[CandidateListing | None] = []
    if tier == "essential":
        upper = [state.premium, state.luxury]
    elif tier == "premium":
        lower, upper = [state.essential], [state.luxury]
    else:
        lower = [state.premium, state.essential]

    if any(n is not None and price < n.normalized_price for n in lower):
        return False
    if any(n is not None and price > n.normalized_price for n in upper):
        return False
    return True


def backfill_for(tier: str) -> Strategy:
    """Build the backfill strategy for a missing tier.

    Picks the best remaining listing (rating, then reviews, then cheaper)
    that meets the essential bar and keeps price order.
    """

    def backfill(
        pool: list[CandidateListing], state: SelectionState
    ) -> CandidateListing | None:
        bar = state.config.essential_bar
        eligible = [c for c in pool if c.meets(bar) and _backfill_price_ok(c, state, tier)]
        return min(
            eligible,
            key=lambda c: (-c.rating, -c.review_count, c.normalized_price, c.position),
            default=None,
        )

    backfill.__name__ = f"backfill_{tier}"
    return backfill


ESSENTIAL_STRATEGIES: list[Strategy] = [
    cheapest_meeting_essential_bar,
    cheapest_available,
]

LUXURY_STRATEGIES: list[Strategy] = [
    strict_luxury,
    highest_rated_above_essential,
    most_expensive_above_essential,
]

PREMIUM_STRATEGIES: list[Strategy] = [
    best_scoring_premium,
]

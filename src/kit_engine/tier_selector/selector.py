"""Tiered product selector.

Assigns up to three filtered listings of one category to the essential,
premium and luxury tiers, in that price order.

Algorithm:
1. Essential: cheapest listing meeting the essential bar, else cheapest overall
2. Anchor brand: the essential pick's brand
3. Luxury: strict bar + price separation (anchor brand preferred), else the
   best-rated listing above essential, else the priciest above essential
4. Premium: best score (rating + anchor bonus + persona bias) strictly
   between essential and luxury; absent if nothing keeps the order
5. Every assigned listing leaves the pool before the next tier
6. Backfill: missing tiers take the best remaining listing that meets the
   essential bar and keeps (non-strict) price order

"No qualifying candidates" is a normal outcome: the result simply holds
fewer tiers.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from .brand_extractor import BrandExtractor
from .candidate_filter import sort_key
from .deduplicator import canonical_url, unique_listings
from .models import (
    TIERS,
    CandidateListing,
    SelectionContext,
    TierAssignment,
    TierSelectionResult,
)
from .selector_config import SelectorConfig
from .strategies import (
    ESSENTIAL_STRATEGIES,
    LUXURY_STRATEGIES,
    PREMIUM_STRATEGIES,
    SelectionState,
    Strategy,
    backfill_for,
)

logger = logging.getLogger(__name__)


class TierSelector:
    """Picks essential → luxury → premium from a filtered candidate pool.

    Usage:
        selector = TierSelector(selector_config)
        result = selector.select(filtered_candidates, context)
    """

    def __init__(
        self,
        config: SelectorConfig,
        brand_extractor: BrandExtractor | None = None,
        essential_strategies: list[Strategy] | None = None,
        luxury_strategies: list[Strategy] | None = None,
        premium_strategies: list[Strategy] | None = None,
    ) -> None:
        self.config = config
        self.brands = brand_extractor or BrandExtractor(
            config.known_brands, config.generic_lead_words
        )
        self.essential_strategies = (
            ESSENTIAL_STRATEGIES if essential_strategies is None else essential_strategies
        )
        self.luxury_strategies = LUXURY_STRATEGIES if luxury_strategies is None else luxury_strategies
        self.premium_strategies = PREMIUM_STRATEGIES if premium_strategies is None else premium_strategies

    def select(
        self,
        candidates: list[CandidateListing],
        context: SelectionContext,
    ) -> TierSelectionResult:
        """Assign filtered candidates to tiers.

        Args:
            candidates: Listings that passed the CandidateFilter.
            context: Category label, activity and persona hints.

        Returns:
            TierSelectionResult with 0-3 assignments in tier order.
        """
        # Brand-annotated copies; the caller's listings are left untouched
        pool = sorted(
            (
                replace(c, brand=self.brands.extract(c.title))
                for c in unique_listings(c for c in candidates if c.has_price)
            ),
            key=sort_key,
        )

        state = SelectionState(context=context, config=self.config, brands=self.brands)
        picks: dict[str, TierAssignment] = {}

        chains = [
            ("essential", self.essential_strategies),
            ("luxury", self.luxury_strategies),
            ("premium", self.premium_strategies),
        ]
        for tier, strategies in chains:
            assignment = self._run_chain(tier, strategies, pool, state)
            if assignment:
                picks[tier] = assignment
                pool = self._consume(pool, assignment.listing)
                setattr(state, tier, assignment.listing)
                if tier == "essential":
                    state.anchor_brand = assignment.listing.brand

        for tier in TIERS:
            if tier in picks or not pool:
                continue
            assignment = self._run_chain(tier, [backfill_for(tier)], pool, state)
            if assignment:
                picks[tier] = assignment
                pool = self._consume(pool, assignment.listing)
                setattr(state, tier, assignment.listing)

        assignments = [picks[t] for t in TIERS if t in picks]

        logger.info(
            "Selected %d tier(s) for '%s' from %d candidates: %s",
            len(assignments),
            context.product_type,
            len(candidates),
            ", ".join(
                f"{a.tier}={a.listing.display_price} via {a.strategy}"
                for a in assignments
            ) or "none",
        )

        return TierSelectionResult(
            product_type=context.product_type,
            assignments=assignments,
            filtered_pool_size=len(candidates),
        )

    def _run_chain(
        self,
        tier: str,
        strategies: list[Strategy],
        pool: list[CandidateListing],
        state: SelectionState,
    ) -> TierAssignment | None:
        """Try strategies in order and wrap the first pick."""
        for strategy in strategies:
            pick = strategy(pool, state)
            if pick is None:
                continue
            logger.debug(
                "%s: %s picked %s (%s)",
                tier,
                strategy.__name__,
                pick.title[:60],
                pick.display_price,
            )
            return TierAssignment(
                tier=tier,
                listing=pick,
                strategy=strategy.__name__,
                selection_reasons=_generate_reasons(tier, pick, strategy.__name__, state),
            )
        logger.debug("%s: no strategy produced a pick", tier)
        return None

    @staticmethod
    def _consume(
        pool: list[CandidateListing], listing: CandidateListing
    ) -> list[CandidateListing]:
        key = canonical_url(listing.url)
        return [c for c in pool if canonical_url(c.url) != key]


def _generate_reasons(
    tier: str,
    listing: CandidateListing,
    strategy: str,
    state: SelectionState,
) -> list[str]:
    """Human-readable notes on why a listing landed in a tier."""
    reasons = [
        f"Tier: {tier} via {strategy}",
        f"Price: {listing.display_price}",
        f"Rating: {listing.rating:.1f} ({listing.review_count:,} reviews)",
    ]
    if listing.brand:
        reasons.append(f"Brand: {listing.brand}")
    if tier != "essential" and state.shares_anchor_brand(listing):
        reasons.append(f"Matches anchor brand {state.anchor_brand}")
    return reasons

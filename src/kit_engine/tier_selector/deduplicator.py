"""Listing uniqueness within a category pool and across a kit.

Within one category the selector consumes each assigned listing, so no
listing fills two tiers. Across categories the first category to use a
listing keeps it; later categories lose that tier.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable
from urllib.parse import urlparse

from .models import CandidateListing, TierSelectionResult

logger = logging.getLogger(__name__)

# Marketplace item id, e.g. /dp/B0C1234567 or /gp/product/B0C1234567
_ITEM_ID_RE = re.compile(r"/(?:dp|gp/product|gp/aw/d)/([A-Z0-9]{10})(?:[/?]|$)", re.IGNORECASE)


def canonical_url(url: str) -> str:
    """Identity key for a listing url.

    Two urls for the same marketplace item (different ref/query params,
    affiliate tags) map to the same key.
    """
    url = (url or "").strip()
    match = _ITEM_ID_RE.search(url)
    if match:
        return f"item:{match.group(1).upper()}"

    try:
        parsed = urlparse(url)
    except ValueError:
        return url.lower()
    if not parsed.netloc:
        return url.lower()
    host = parsed.netloc.lower().removeprefix("www.")
    return f"{host}{parsed.path.rstrip('/')}".lower()


def unique_listings(listings: Iterable[CandidateListing]) -> list[CandidateListing]:
    """Drop repeated listings, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[CandidateListing] = []
    for listing in listings:
        key = canonical_url(listing.url)
        if key in seen:
            continue
        seen.add(key)
        unique.append(listing)
    return unique


def dedupe_across_categories(
    results: list[TierSelectionResult],
) -> list[TierSelectionResult]:
    """Remove tier assignments whose listing an earlier category already used.

    Results are processed in order, so the first occurrence wins. Categories
    are never dropped here, even if they end up with no tiers.
    """
    used: set[str] = set()
    deduped: list[TierSelectionResult] = []

    for result in results:
        kept = []
        for assignment in result.assignments:
            key = canonical_url(assignment.listing.url)
            if key in used:
                logger.info(
                    "Dropping %s pick for '%s': already used by an earlier category (%s)",
                    assignment.tier,
                    result.product_type,
                    assignment.listing.title[:60],
                )
                continue
            used.add(key)
            kept.append(assignment)

        deduped.append(
            TierSelectionResult(
                product_type=result.product_type,
                assignments=kept,
                candidate_pool_size=result.candidate_pool_size,
                filtered_pool_size=result.filtered_pool_size,
                filter_report=result.filter_report,
            )
        )

    return deduped

"""Heuristic brand extraction from listing titles.

The brand is only a soft preference signal (an affinity bonus when later
tiers share the essential pick's brand), so the extractor returns None
rather than guessing when the title gives no clear brand.

Examples:
    "DeWalt 20V Max Cordless Drill"      → "DeWalt"   (dictionary)
    "The North Face Borealis Backpack"   → "The North Face"
    "WORX WX550L Cordless Saw"           → "WORX"     (all-caps lead token)
    "Wilson Evolution Game Basketball"   → "Wilson"   (TitleCase lead token)
    "Professional Paint Brush Set"       → None       (generic lead word)
"""

from __future__ import annotations

import re

_LEAD_SPLIT_RE = re.compile(r"[\s\-–—,:|/]+")
_ALL_CAPS_RE = re.compile(r"^[A-Z0-9]+$")
_TITLE_CASE_RE = re.compile(r"^[A-Z][a-zA-Z0-9]+$")


class BrandExtractor:
    """Derives an optional brand token from a listing title.

    Strategy:
    1. Known-brand dictionary, word-boundary containment, longest first
    2. Lead token that is all-caps alphanumeric with length > 2
    3. Lead token that is TitleCase with length >= 3
    Lead tokens found in the generic stoplist never count as a brand.

    Usage:
        extractor = BrandExtractor(config.known_brands, config.generic_lead_words)
        brand = extractor.extract("DeWalt 20V Max Cordless Drill")
    """

    def __init__(
        self,
        known_brands: list[str] | None = None,
        generic_lead_words: list[str] | None = None,
    ) -> None:
        # Longest first so "Instant Pot" beats a shorter overlapping entry
        brands = sorted(set(known_brands or []), key=lambda b: (-len(b), b.lower()))
        self._brand_patterns = [
            (brand, re.compile(rf"(?<![a-z0-9]){re.escape(brand.lower())}(?![a-z0-9])"))
            for brand in brands
        ]
        self._generic = {w.lower() for w in (generic_lead_words or [])}

    def extract(self, title: str | None) -> str | None:
        if not title or not title.strip():
            return None

        title_lower = title.lower()
        for brand, pattern in self._brand_patterns:
            if pattern.search(title_lower):
                return brand

        tokens = [t for t in _LEAD_SPLIT_RE.split(title.strip()) if t]
        if not tokens:
            return None
        lead = tokens[0]
        if lead.lower() in self._generic:
            return None

        if len(lead) > 2 and lead[0].isalpha() and _ALL_CAPS_RE.match(lead):
            return lead
        if len(lead) >= 3 and _TITLE_CASE_RE.match(lead):
            return lead
        return None

    def same_brand(self, a: str | None, b: str | None) -> bool:
        """Case-insensitive brand equality; unknown brands never match."""
        return bool(a and b and a.lower() == b.lower())

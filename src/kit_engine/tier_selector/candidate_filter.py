"""Candidate filtering for tier selection.

Drops listings that are structurally invalid, off-marketplace, excluded by
keyword, bulk packs, or too weakly reviewed to trust, then sorts the
survivors by price. A dropped listing is data, not an error: each
rejection is tallied in a FilterReport.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

from .deduplicator import unique_listings
from .models import CandidateListing, FilterReport, SelectionContext
from .selector_config import SelectorConfig

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")
_POSSESSIVE_RE = re.compile(r"['’]s\b")


def singularize(word: str) -> str:
    """Strip a simple English plural suffix.

    'batteries' → 'battery', 'brushes' → 'brush', 'glasses' → 'glass',
    'shoes' → 'shoe', 'bass' → 'bass'. Words of 3 letters or fewer are kept.
    """
    if len(word) <= 3:
        return word
    if word.endswith("ies") and len(word) > 4:
        return word[:-3] + "y"
    if word.endswith(("ches", "shes", "xes", "sses", "zes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return word[:-1]
    return word


def term_forms(word: str) -> set[str]:
    """The word, its singular, and its f/ves counterpart.

    'knives' → {'knives', 'knive', 'knif', 'knife'}; 'knife' → {'knife', 'knive'}.
    """
    forms = {word, singularize(word)}
    if len(word) <= 3:
        return forms
    if word.endswith("ves"):
        forms |= {word[:-3] + "f", word[:-3] + "fe"}
    elif word.endswith("fe"):
        forms.add(word[:-2] + "ve")
    elif word.endswith("f"):
        forms.add(word[:-1] + "ve")
    return forms


def tokenize(text: str) -> list[str]:
    """Lower-case alphanumeric tokens with possessives removed."""
    return _TOKEN_RE.findall(_POSSESSIVE_RE.sub("", (text or "").lower()))


def derive_core_terms(product_type: str, generic_modifiers: list[str]) -> list[str]:
    """Keywords a listing title must contain to be relevant to a category.

    "Beginner's Paint Brush Set" → ['paint', 'brush']
    "Running Shoes for Beginners" → ['running', 'shoe']
    """
    generic = {singularize(w) for w in generic_modifiers} | set(generic_modifiers)
    terms: list[str] = []
    for token in tokenize(product_type):
        if token in generic or singularize(token) in generic:
            continue
        term = singularize(token)
        if term not in terms:
            terms.append(term)
    return terms


def _keyword_pattern(keywords: list[str]) -> re.Pattern | None:
    if not keywords:
        return None
    alternatives = "|".join(
        re.escape(k) for k in sorted(set(keywords), key=len, reverse=True)
    )
    return re.compile(rf"(?<![a-z0-9])(?:{alternatives})(?![a-z0-9])")


def sort_key(listing: CandidateListing) -> tuple:
    """Ascending price; ties go to the better-rated, better-reviewed listing."""
    return (
        listing.normalized_price,
        -listing.rating,
        -listing.review_count,
        listing.position,
    )


class CandidateFilter:
    """Filters a raw candidate pool for one category.

    Checks, in order:
    1. Required fields (title, image, price, url) present
    2. Url belongs to the configured marketplace domain
    3. Price parses and lies within the context's floor/ceiling
    4. Title free of exclusion keywords (and of instructional-media
       keywords unless the category is itself a book)
    5. Title does not look like a bulk pack
    6. Not both rating and review count below the quality floor
    7. Title contains every core term of the category label

    Usage:
        candidate_filter = CandidateFilter(selector_config)
        survivors = candidate_filter.filter(listings, context)
    """

    def __init__(self, config: SelectorConfig) -> None:
        self.config = config
        self._exclude_re = _keyword_pattern(config.exclude_keywords)
        self._media_re = _keyword_pattern(config.media_keywords)
        self._bulk_res = [re.compile(p, re.IGNORECASE) for p in config.bulk_patterns]
        self.last_report = FilterReport()

    def filter(
        self,
        listings: list[CandidateListing],
        context: SelectionContext,
    ) -> list[CandidateListing]:
        """Return surviving listings sorted ascending by normalized price.

        The report for this call is available as ``last_report``.
        """
        report = FilterReport(total=len(listings))
        allow_media = self.is_book_category(context.product_type)

        unique = unique_listings(listings)
        if len(unique) < len(listings):
            report.rejections["duplicate"] = len(listings) - len(unique)

        survivors: list[CandidateListing] = []
        for listing in unique:
            reason = self.rejection_reason(listing, context, allow_media)
            if reason:
                report.reject(reason)
                continue
            survivors.append(listing)

        if self.config.require_title_relevance:
            survivors = self._filter_relevant(survivors, context, report)

        survivors.sort(key=sort_key)
        report.accepted = len(survivors)
        self.last_report = report

        logger.info(
            "Filter '%s': %d/%d listings kept, rejections=%s",
            context.product_type,
            report.accepted,
            report.total,
            report.to_dict()["rejections"],
        )
        return survivors

    def rejection_reason(
        self,
        listing: CandidateListing,
        context: SelectionContext,
        allow_media: bool = False,
    ) -> str | None:
        """Name of the first check the listing fails, or None if it passes."""
        if not (listing.title and listing.image_url and listing.price_text and listing.url):
            return "missing_field"
        if not self._is_marketplace_url(listing.url):
            return "off_marketplace"
        if not listing.has_price:
            return "unparseable_price"
        if context.price_floor is not None and listing.normalized_price < context.price_floor:
            return "below_price_floor"
        if context.price_ceiling is not None and listing.normalized_price > context.price_ceiling:
            return "above_price_ceiling"

        title = listing.title.lower()
        if self._exclude_re and self._exclude_re.search(title):
            return "excluded_keyword"
        if not allow_media and self._media_re and self._media_re.search(title):
            return "instructional_media"
        if self.is_bulk_pack(title):
            return "bulk_pack"

        floor = self.config.filter_floor
        if listing.rating < floor.min_rating and listing.review_count < floor.min_reviews:
            return "low_confidence"
        return None

    def is_bulk_pack(self, title: str) -> bool:
        return any(p.search(title) for p in self._bulk_res)

    def is_book_category(self, product_type: str) -> bool:
        tokens = {singularize(t) for t in tokenize(product_type)}
        return any(singularize(m) in tokens for m in self.config.book_category_markers)

    def is_relevant(self, title: str, core_terms: list[str]) -> bool:
        """True if every core term appears in the title (plural-insensitive)."""
        if not core_terms:
            return True
        tokens = tokenize(title)
        title_terms = set().union(*(term_forms(t) for t in tokens))
        return all(term in title_terms for term in core_terms)

    def _filter_relevant(
        self,
        listings: list[CandidateListing],
        context: SelectionContext,
        report: FilterReport,
    ) -> list[CandidateListing]:
        core_terms = derive_core_terms(context.product_type, self.config.generic_modifiers)
        relevant = [l for l in listings if self.is_relevant(l.title, core_terms)]

        if listings and not relevant:
            # Relevance only narrows the pool; it never empties it
            logger.warning(
                "No titles contain all core terms %s for '%s'; skipping relevance filter",
                core_terms,
                context.product_type,
            )
            return listings

        dropped = len(listings) - len(relevant)
        if dropped:
            report.rejections["irrelevant_title"] = dropped
        return relevant

    def _is_marketplace_url(self, url: str) -> bool:
        domain = self.config.marketplace_domain.lower()
        if not domain:
            return True
        try:
            host = (urlparse(url).hostname or "").lower()
        except ValueError:
            return False
        return host == domain or host.endswith("." + domain)

"""Starter kit pipeline.

Steps:
1. Rate-limit gate for the requesting client
2. Per category, concurrently: acquire listings → filter → select tiers
3. Join in input order, drop listings an earlier category already used
4. Rewrite links with the affiliate tag, fill reason-for-inclusion text
5. Drop categories left with no tiers

Usage:
    pipeline = KitPipeline()
    kit = pipeline.run("rock climbing", ["Climbing Shoes", "Chalk Bag"])
    print(kit.model_dump_json(indent=2))
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any

from src.common.config import Settings, get_affiliate_tag, settings as default_settings
from src.common.errors import AcquisitionError
from src.common.models import PersonaHints, ProductTypeGroup, StarterKit, Tier, TierProduct
from src.kit_content import ReasonWriter, add_affiliate_tag

from ..common.config import Config
from ..common.rate_limiter import SlidingWindowRateLimiter, build_counter_store
from ..listing_search import ListingSearchClient
from ..tier_selector import (
    SelectionContext,
    SelectorConfig,
    TierAssignment,
    TierSelectionEngine,
    TierSelectionResult,
    dedupe_across_categories,
)

logger = logging.getLogger(__name__)


def load_selector_config(config: Config) -> SelectorConfig:
    """Selector config from the path named by Config, else the default file."""
    path = config.selector_config_abs_path
    if path.exists():
        return SelectorConfig.from_yaml(path)
    return SelectorConfig.load_default()


def select_offline(
    records: list[dict[str, Any]],
    context: SelectionContext,
    selector_config: SelectorConfig | None = None,
) -> TierSelectionResult:
    """Filter and select over already-fetched raw records. No I/O."""
    return TierSelectionEngine(selector_config).run_records(records, context)


class KitPipeline:
    """Builds a StarterKit for an activity from a list of category labels.

    Collaborators are injectable; by default they are built from Config and
    Settings, so a missing RAPIDAPI_KEY raises ConfigurationError here,
    before any request is served.

    Usage:
        pipeline = KitPipeline(config)
        kit = pipeline.run("yoga", ["Yoga Mat", "Yoga Blocks"], client_id="10.0.0.7")
    """

    def __init__(
        self,
        config: Config | None = None,
        settings: Settings | None = None,
        selector_config: SelectorConfig | None = None,
        search_client: ListingSearchClient | None = None,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        reason_writer: ReasonWriter | None = None,
        affiliate_tag: str | None = None,
        write_reasons: bool = True,
    ) -> None:
        self.config = config or Config()
        self.settings = settings or default_settings
        self.engine = TierSelectionEngine(
            selector_config or load_selector_config(self.config)
        )
        self.search_client = search_client or ListingSearchClient(
            self.config, self.settings
        )
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(
            build_counter_store(self.config),
            window_seconds=self.settings.rate_limit.window_seconds,
            max_requests=self.settings.rate_limit.max_requests,
        )
        self.reason_writer = reason_writer
        if self.reason_writer is None and write_reasons:
            self.reason_writer = ReasonWriter(settings=self.settings)
        self.affiliate_tag = affiliate_tag if affiliate_tag is not None else get_affiliate_tag()

    def run(
        self,
        activity: str,
        product_types: list[str],
        client_id: str = "",
        persona: PersonaHints | None = None,
        price_floor: float | None = None,
        price_ceiling: float | None = None,
        explanations: dict[str, str] | None = None,
    ) -> StarterKit:
        """Build the kit.

        Args:
            activity: Free-text activity; also the search keyword prefix.
            product_types: Category labels, in display order.
            client_id: Requester identity for the rate limiter.
            persona: Optional age band / experience level hints.
            price_floor: Optional lower price bound for every category.
            price_ceiling: Optional upper price bound for every category.
            explanations: Optional per-category explanation text.

        Returns:
            StarterKit with one group per category that kept any tier.

        Raises:
            RateLimitExceeded: Before any acquisition work starts.
        """
        self.rate_limiter.check(client_id)

        labels = _unique_labels(product_types)
        logger.info("=== Starter Kit: %s (%d categories) ===", activity, len(labels))
        if not labels:
            return StarterKit(activity=activity, generated_at=datetime.now())

        contexts = [
            SelectionContext(
                product_type=label,
                base_keywords=activity,
                price_floor=price_floor,
                price_ceiling=price_ceiling,
                persona=persona,
            )
            for label in labels
        ]

        workers = max(1, min(self.config.max_workers, len(contexts)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            # map() yields in submission order once every category settles
            results = list(executor.map(self.select_category, contexts))

        results = dedupe_across_categories(results)

        groups = self._build_groups(activity, results, explanations or {})
        kit = StarterKit(activity=activity, generated_at=datetime.now(), groups=groups)

        logger.info(
            "Kit for '%s': %d/%d categories, %d products",
            activity,
            len(groups),
            len(labels),
            len(kit.links),
        )
        return kit

    def select_category(self, context: SelectionContext) -> TierSelectionResult:
        """Acquire and select for one category.

        An acquisition failure degrades this category to an empty pool.
        """
        try:
            records = self.search_client.fetch_candidates(context.query)
        except AcquisitionError as e:
            if e.is_auth_failure:
                logger.error("Listing search auth failure for '%s': %s", context.query, e)
            else:
                logger.warning("Acquisition failed for '%s': %s", context.query, e)
            records = []
        except Exception:
            logger.error("Unexpected acquisition failure for '%s'", context.query, exc_info=True)
            records = []
        return self.engine.run_records(records, context)

    # --- Output building ---

    def _build_groups(
        self,
        activity: str,
        results: list[TierSelectionResult],
        explanations: dict[str, str],
    ) -> list[ProductTypeGroup]:
        jobs = [
            (result.product_type, assignment)
            for result in results
            for assignment in result.assignments
        ]
        reasons = self._write_reasons(activity, jobs)

        groups: list[ProductTypeGroup] = []
        for result in results:
            if not result.assignments:
                logger.warning("No tiers selected for '%s'; dropping category", result.product_type)
                continue
            tiers = [
                self._to_tier_product(a, reasons.get(id(a), ""))
                for a in result.assignments
            ]
            groups.append(
                ProductTypeGroup(
                    product_type=result.product_type,
                    explanation=explanations.get(result.product_type, ""),
                    tiers=tiers,
                )
            )
        return groups

    def _write_reasons(
        self,
        activity: str,
        jobs: list[tuple[str, TierAssignment]],
    ) -> dict[int, str]:
        if self.reason_writer is None or not jobs:
            return {}

        writer = self.reason_writer

        def write(job: tuple[str, TierAssignment]) -> str:
            product_type, assignment = job
            return writer.write(assignment.listing.title, activity, product_type)

        workers = max(1, min(self.config.max_workers, len(jobs)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            texts = list(executor.map(write, jobs))
        return {id(assignment): text for (_, assignment), text in zip(jobs, texts)}

    def _to_tier_product(self, assignment: TierAssignment, reason: str) -> TierProduct:
        listing = assignment.listing
        return TierProduct(
            name=listing.title,
            link=add_affiliate_tag(listing.url, self.affiliate_tag),
            image=listing.image_url,
            price=listing.display_price,
            rating=listing.rating,
            reviews=listing.review_count,
            tier=Tier(assignment.tier),
            reason_for_inclusion=reason,
        )


def _unique_labels(product_types: list[str]) -> list[str]:
    """Trimmed, non-empty labels; repeats (case-insensitive) dropped."""
    seen: set[str] = set()
    labels: list[str] = []
    for label in product_types:
        cleaned = " ".join((label or "").split())
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        labels.append(cleaned)
    return labels

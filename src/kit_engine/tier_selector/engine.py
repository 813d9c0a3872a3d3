"""Filter + select for one category, starting from raw listings."""

from __future__ import annotations

import logging
from typing import Any

from .candidate_filter import CandidateFilter
from .models import CandidateListing, SelectionContext, TierSelectionResult
from .selector import TierSelector
from .selector_config import SelectorConfig

logger = logging.getLogger(__name__)


class TierSelectionEngine:
    """Runs the candidate filter, then the tier selector.

    Pure and synchronous: no I/O happens here, so one engine can serve many
    categories concurrently.

    Usage:
        engine = TierSelectionEngine(SelectorConfig.load_default())
        result = engine.run_records(api_products, SelectionContext("Yoga Mat"))
    """

    def __init__(self, config: SelectorConfig | None = None) -> None:
        self.config = config or SelectorConfig.load_default()
        self.selector = TierSelector(self.config)

    def run(
        self,
        listings: list[CandidateListing],
        context: SelectionContext,
    ) -> TierSelectionResult:
        # A filter per call keeps last_report thread-local to the request
        candidate_filter = CandidateFilter(self.config)
        survivors = candidate_filter.filter(listings, context)
        result = self.selector.select(survivors, context)
        result.candidate_pool_size = len(listings)
        result.filter_report = candidate_filter.last_report
        return result

    def run_records(
        self,
        records: list[dict[str, Any]],
        context: SelectionContext,
    ) -> TierSelectionResult:
        """Same as run(), from raw marketplace API product records."""
        listings = [
            CandidateListing.from_api(record, position=i)
            for i, record in enumerate(records)
            if isinstance(record, dict)
        ]
        if len(listings) < len(records):
            logger.warning(
                "Skipped %d non-object records for '%s'",
                len(records) - len(listings),
                context.product_type,
            )
        return self.run(listings, context)

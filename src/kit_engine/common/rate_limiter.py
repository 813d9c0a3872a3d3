"""Sliding-window request gate keyed by client identity."""

from __future__ import annotations

import logging
import math
import time
from typing import Callable

from src.common.errors import RateLimitExceeded

from .config import Config
from .counter_store import CounterStore, InMemoryCounterStore, SqliteCounterStore

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Rejects a client once it has made max_requests within window_seconds.

    The hit log lives in an injected CounterStore so that several workers
    can share one budget, and the clock is injectable so tests never sleep.

    Args:
        store: Expiring counter backend.
        window_seconds: Length of the sliding window.
        max_requests: Requests allowed per client per window.
        clock: Returns the current time in seconds.
    """

    def __init__(
        self,
        store: CounterStore,
        window_seconds: float = 60.0,
        max_requests: int = 30,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.window_seconds = window_seconds
        self.max_requests = max(max_requests, 1)
        self._clock = clock

    def check(self, client_id: str) -> int:
        """Record a request for client_id or raise if over budget.

        Returns:
            Requests remaining in the current window.

        Raises:
            RateLimitExceeded: With a retry-after hint in whole seconds.
        """
        key = client_id or "unknown_client"
        now = self._clock()
        state = self.store.hit(key, now, self.window_seconds, self.max_requests)

        if state.allowed:
            return self.max_requests - state.count

        retry_after = self.window_seconds
        if state.oldest_hit is not None:
            retry_after = state.oldest_hit + self.window_seconds - now
        retry_after_s = max(1, math.ceil(retry_after))

        logger.warning(
            "Rate limit exceeded for %s (%d requests in %.0fs), retry in %ds",
            key,
            state.count,
            self.window_seconds,
            retry_after_s,
        )
        raise RateLimitExceeded(key, retry_after_s)


def build_counter_store(config: Config) -> CounterStore:
    """Pick the counter backend named by config.rate_limit_backend."""
    if config.rate_limit_backend == "sqlite":
        return SqliteCounterStore(config.counter_db_abs_path)
    if config.rate_limit_backend != "memory":
        logger.warning(
            "Unknown RATE_LIMIT_BACKEND '%s', using in-memory store",
            config.rate_limit_backend,
        )
    return InMemoryCounterStore()

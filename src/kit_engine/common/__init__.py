"""Common utilities shared across kit engine modules."""

from .config import Config
from .counter_store import CounterStore, InMemoryCounterStore, SqliteCounterStore
from .http_client import HTTPClient
from .rate_limiter import SlidingWindowRateLimiter, build_counter_store

__all__ = [
    "Config",
    "CounterStore",
    "HTTPClient",
    "InMemoryCounterStore",
    "SlidingWindowRateLimiter",
    "SqliteCounterStore",
    "build_counter_store",
]

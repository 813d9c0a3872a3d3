"""Configuration management for kit engine modules."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
_PROJECT_ROOT = Path(__file__).resolve().parents[3]
load_dotenv(_PROJECT_ROOT / ".env")


@dataclass
class Config:
    """Central runtime configuration loaded from environment variables."""

    # Shared rate-limit counter store
    counter_db_path: str = field(
        default_factory=lambda: os.getenv(
            "RATE_LIMIT_DB_PATH", "data/rate_limits.db"
        )
    )
    rate_limit_backend: str = field(
        default_factory=lambda: os.getenv("RATE_LIMIT_BACKEND", "memory")
    )

    # Listing search
    request_timeout: int = 30
    max_retries: int = 3
    listing_search_base_url: str = "https://real-time-amazon-data.p.rapidapi.com"

    # One worker per category, capped
    max_workers: int = 8

    # Selector configuration file (relative to project root)
    selector_config_path: str = "config/selector.yaml"

    def __post_init__(self) -> None:
        """Load overrides from environment."""
        if timeout := os.getenv("REQUEST_TIMEOUT"):
            self.request_timeout = int(timeout)
        if retries := os.getenv("REQUEST_MAX_RETRIES"):
            self.max_retries = int(retries)
        if workers := os.getenv("KIT_MAX_WORKERS"):
            self.max_workers = max(1, int(workers))
        if url := os.getenv("LISTING_SEARCH_BASE_URL"):
            self.listing_search_base_url = url.rstrip("/")
        if path := os.getenv("SELECTOR_CONFIG_PATH"):
            self.selector_config_path = path

    @property
    def counter_db_abs_path(self) -> Path:
        """Resolve counter database path relative to project root."""
        p = Path(self.counter_db_path)
        if p.is_absolute():
            return p
        return _PROJECT_ROOT / p

    @property
    def selector_config_abs_path(self) -> Path:
        p = Path(self.selector_config_path)
        if p.is_absolute():
            return p
        return _PROJECT_ROOT / p

"""Project configuration and paths.

Loads settings from config/settings.yaml and environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .errors import ConfigurationError

# === Paths ===
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"

# Load .env from project root
load_dotenv(PROJECT_ROOT / ".env")


class AcquisitionSettings(BaseModel):
    """Settings for the marketplace listing search API."""
    api_host: str = "real-time-amazon-data.p.rapidapi.com"
    country: str = "US"
    sort_by: str = "RELEVANCE"
    product_condition: str = "ALL"
    # Fetch a second page when page 1 returns fewer listings than this
    second_page_threshold: int = 15
    max_candidates: int = 25


class RateLimitSettings(BaseModel):
    """Per-client request gate in front of the kit pipeline."""
    window_seconds: float = 60.0
    max_requests: int = 30


class LLMSettings(BaseModel):
    """LLM API settings for reason-for-inclusion text."""
    openai_model: str = "gpt-3.5-turbo"
    anthropic_model: str = "claude-3-5-haiku-latest"
    max_tokens: int = 70
    temperature: float = 0.3


class AffiliateSettings(BaseModel):
    """Affiliate tag applied to final listing links."""
    default_tag: str = "aarongurovich-20"


class Settings(BaseModel):
    """Top-level application settings."""
    acquisition: AcquisitionSettings = Field(default_factory=AcquisitionSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    affiliate: AffiliateSettings = Field(default_factory=AffiliateSettings)

    @classmethod
    def load(cls) -> Settings:
        """Load settings from config/settings.yaml, falling back to defaults."""
        settings_path = CONFIG_DIR / "settings.yaml"
        if settings_path.exists():
            with open(settings_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()


def get_rapidapi_key() -> str:
    """Get the RapidAPI key from environment.

    A user-provided key takes precedence, but the service key must be
    configured either way.
    """
    key = os.getenv("RAPIDAPI_KEY", "")
    if not key:
        raise ConfigurationError("RAPIDAPI_KEY not set in environment")
    return os.getenv("USER_PROVIDED_RAPIDAPI_KEY") or key


def get_openai_api_key() -> str:
    """Get OpenAI API key from environment."""
    key = os.getenv("OPENAI_API_KEY", "")
    if not key:
        raise ConfigurationError("OPENAI_API_KEY not set in environment")
    return key


def get_anthropic_api_key() -> str:
    """Get Anthropic API key from environment."""
    key = os.getenv("ANTHROPIC_API_KEY", "")
    if not key:
        raise ConfigurationError("ANTHROPIC_API_KEY not set in environment")
    return key


def get_affiliate_tag() -> str:
    """Affiliate tag from environment, else the configured default."""
    return os.getenv("AMAZON_AFFILIATE_TAG") or settings.affiliate.default_tag


# Singleton settings instance
settings = Settings.load()

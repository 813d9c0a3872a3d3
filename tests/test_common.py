"""Tests for shared common modules — models, errors, config, logging."""

import io
import logging
from datetime import datetime

import pytest

from src.common.config import (
    Settings,
    get_affiliate_tag,
    get_openai_api_key,
    get_rapidapi_key,
)
from src.common.errors import (
    AcquisitionError,
    ConfigurationError,
    RateLimitExceeded,
    StarterKitError,
)
from src.common.logging import resolve_level, setup_logging
from src.common.models import (
    TIER_RANK,
    PersonaHints,
    ProductTypeGroup,
    StarterKit,
    Tier,
    TierProduct,
)


def _tier_product(tier: Tier, link: str = "https://www.amazon.com/dp/B000000001") -> TierProduct:
    return TierProduct(
        name="Gaiam Yoga Mat",
        link=link,
        image="https://m.media-amazon.com/images/I/x.jpg",
        price="$21.98",
        rating=4.5,
        reviews=120,
        tier=tier,
    )


class TestTierProduct:
    def test_create(self):
        product = _tier_product(Tier.ESSENTIAL)
        assert product.tier == Tier.ESSENTIAL
        assert product.reason_for_inclusion == ""

    def test_tier_from_string(self):
        product = _tier_product("luxury")
        assert product.tier == Tier.LUXURY

    def test_rating_out_of_range(self):
        with pytest.raises(Exception):
            TierProduct(
                name="x", link="l", image="i", price="$1",
                rating=5.5, reviews=0, tier=Tier.PREMIUM,
            )

    def test_negative_reviews(self):
        with pytest.raises(Exception):
            TierProduct(
                name="x", link="l", image="i", price="$1",
                rating=4.0, reviews=-1, tier=Tier.PREMIUM,
            )

    def test_tier_rank_order(self):
        assert TIER_RANK[Tier.ESSENTIAL] < TIER_RANK[Tier.PREMIUM] < TIER_RANK[Tier.LUXURY]

    def test_group_tiers_kept_in_rank_order(self):
        def product(tier):
            return TierProduct(
                name=tier.value, link=f"https://www.amazon.com/dp/{tier.value}", image="i",
                price="$1", rating=4.0, reviews=1, tier=tier,
            )

        group = ProductTypeGroup(
            product_type="Drill",
            tiers=[product(Tier.LUXURY), product(Tier.ESSENTIAL), product(Tier.PREMIUM)],
        )
        assert group.tier_names == ["essential", "premium", "luxury"]


class TestStarterKit:
    def test_group_lookup(self):
        group = ProductTypeGroup(
            product_type="Yoga Mat",
            tiers=[_tier_product(Tier.ESSENTIAL), _tier_product(Tier.LUXURY)],
        )
        assert group.tier_names == ["essential", "luxury"]
        assert group.get("luxury").tier == Tier.LUXURY
        assert group.get(Tier.PREMIUM) is None

    def test_links_flatten_groups(self):
        kit = StarterKit(
            activity="yoga",
            generated_at=datetime(2026, 1, 15, 9, 30),
            groups=[
                ProductTypeGroup(
                    product_type="Yoga Mat",
                    tiers=[_tier_product(Tier.ESSENTIAL, "https://a")],
                ),
                ProductTypeGroup(
                    product_type="Yoga Block",
                    tiers=[_tier_product(Tier.PREMIUM, "https://b")],
                ),
            ],
        )
        assert kit.links == ["https://a", "https://b"]

    def test_json_dump(self):
        kit = StarterKit(activity="yoga", generated_at=datetime(2026, 1, 15))
        data = kit.model_dump(mode="json")
        assert data["activity"] == "yoga"
        assert data["groups"] == []
        assert data["generated_at"].startswith("2026-01-15")

    def test_persona_defaults(self):
        persona = PersonaHints()
        assert persona.age_band == ""
        assert persona.experience_level == ""


class TestErrors:
    def test_hierarchy(self):
        assert issubclass(ConfigurationError, StarterKitError)
        assert issubclass(AcquisitionError, StarterKitError)
        assert issubclass(RateLimitExceeded, StarterKitError)

    def test_acquisition_failure_kinds(self):
        assert AcquisitionError("x", status_code=401).is_auth_failure
        assert AcquisitionError("x", status_code=403).is_auth_failure
        assert AcquisitionError("x", status_code=429).is_quota_failure
        network = AcquisitionError("timeout", query="yoga mat", page=2)
        assert not network.is_auth_failure
        assert not network.is_quota_failure
        assert network.page == 2

    def test_rate_limit_message_has_retry_hint(self):
        e = RateLimitExceeded("10.0.0.1", 42)
        assert e.retry_after == 42
        assert "42 seconds" in str(e)


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.rate_limit.window_seconds == 60
        assert s.rate_limit.max_requests == 30
        assert s.acquisition.second_page_threshold == 15
        assert s.llm.max_tokens == 70

    def test_load_from_yaml(self):
        s = Settings.load()
        assert s.acquisition.country == "US"
        assert s.affiliate.default_tag == "aarongurovich-20"

    def test_partial_override(self):
        s = Settings(rate_limit={"max_requests": 5})
        assert s.rate_limit.max_requests == 5
        assert s.rate_limit.window_seconds == 60


class TestCredentials:
    def test_rapidapi_key_missing(self, monkeypatch):
        monkeypatch.delenv("RAPIDAPI_KEY", raising=False)
        monkeypatch.delenv("USER_PROVIDED_RAPIDAPI_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            get_rapidapi_key()

    def test_user_key_overrides(self, monkeypatch):
        monkeypatch.setenv("RAPIDAPI_KEY", "service-key")
        monkeypatch.setenv("USER_PROVIDED_RAPIDAPI_KEY", "user-key")
        assert get_rapidapi_key() == "user-key"

    def test_service_key(self, monkeypatch):
        monkeypatch.setenv("RAPIDAPI_KEY", "service-key")
        monkeypatch.delenv("USER_PROVIDED_RAPIDAPI_KEY", raising=False)
        assert get_rapidapi_key() == "service-key"

    def test_openai_key_missing(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            get_openai_api_key()

    def test_affiliate_tag(self, monkeypatch):
        monkeypatch.delenv("AMAZON_AFFILIATE_TAG", raising=False)
        assert get_affiliate_tag() == "aarongurovich-20"
        monkeypatch.setenv("AMAZON_AFFILIATE_TAG", "mykit-20")
        assert get_affiliate_tag() == "mykit-20"


class TestLogging:
    def test_resolve_level(self, monkeypatch):
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level(logging.WARNING) == logging.WARNING
        assert resolve_level("nonsense") == logging.INFO
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        assert resolve_level() == logging.ERROR

    def test_setup_logging_format(self):
        stream = io.StringIO()
        logger = setup_logging(level="INFO", module_name="test_kit_logging", stream=stream)
        logger.info("selected %d tiers", 2)
        output = stream.getvalue()
        assert "[INFO] test_kit_logging: selected 2 tiers" in output

    def test_setup_logging_idempotent(self):
        first = setup_logging(module_name="test_kit_idempotent", stream=io.StringIO())
        second = setup_logging(module_name="test_kit_idempotent", stream=io.StringIO())
        assert first is second
        assert len(second.handlers) == 1

"""Tests for the starter kit pipeline and CLI.

The listing search client and reason writer are replaced with fakes (or a
mocked requests.Session); the filter, selector, deduplication and affiliate
rewriting run for real.
"""

from __future__ import annotations

import json
import threading
from unittest.mock import MagicMock

import pytest
import requests

from src.common.config import Settings
from src.common.errors import AcquisitionError, RateLimitExceeded
from src.common.models import PersonaHints, StarterKit, Tier
from src.kit_engine.common.config import Config
from src.kit_engine.common.counter_store import InMemoryCounterStore
from src.kit_engine.common.http_client import HTTPClient
from src.kit_engine.common.rate_limiter import SlidingWindowRateLimiter
from src.kit_engine.kit_builder import main as cli
from src.kit_engine.kit_builder.pipeline import KitPipeline, select_offline
from src.kit_engine.listing_search.client import ListingSearchClient
from src.kit_engine.tier_selector import SelectionContext


def _record(asin: str, title: str, price: str, rating: str = "4.5", reviews: int = 100) -> dict:
    return {
        "asin": asin,
        "product_title": title,
        "product_price": price,
        "product_star_rating": rating,
        "product_num_ratings": reviews,
        "product_url": f"https://www.amazon.com/dp/{asin}",
        "product_photo": f"https://m.media-amazon.com/images/I/{asin}.jpg",
    }


MAT_RECORDS = [
    _record("B0MAT00001", "Gaiam Yoga Mat", "$21.98"),
    _record("B0MAT00002", "Manduka Yoga Mat 6mm", "$129.00", "4.8", 3000),
    _record("B0MAT00003", "Liforme Yoga Mat", "$60.00", "4.4", 900),
]

BLOCK_RECORDS = [
    _record("B0BLK00001", "Gaiam Yoga Block", "$9.98"),
    _record("B0BLK00002", "Manduka Cork Yoga Block", "$24.00", "4.7", 800),
    # same listing as the mat essential pick
    _record("B0MAT00001", "Gaiam Yoga Mat and Yoga Block Bundle", "$21.98"),
]


class FakeSearchClient:
    def __init__(self, responses: dict[str, object]):
        self.responses = responses
        self.queries: list[str] = []
        self._lock = threading.Lock()

    def fetch_candidates(self, query: str) -> list[dict]:
        with self._lock:
            self.queries.append(query)
        response = self.responses.get(query, [])
        if isinstance(response, Exception):
            raise response
        return response


class FakeReasonWriter:
    def write(self, product_title: str, activity: str, product_type: str) -> str:
        return f"{product_type} for {activity}"


@pytest.fixture
def limiter() -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(InMemoryCounterStore(), window_seconds=60, max_requests=2)


@pytest.fixture
def make_pipeline(selector_config, limiter):
    def _make(responses: dict, reason_writer=None) -> KitPipeline:
        return KitPipeline(
            Config(max_workers=4),
            settings=Settings(),
            selector_config=selector_config,
            search_client=FakeSearchClient(responses),
            rate_limiter=limiter,
            reason_writer=reason_writer,
            affiliate_tag="kit-20",
            write_reasons=False,
        )

    return _make


class TestKitPipeline:
    def test_builds_groups_in_input_order(self, make_pipeline):
        pipeline = make_pipeline({"yoga Yoga Mat": MAT_RECORDS, "yoga Yoga Block": BLOCK_RECORDS})
        kit = pipeline.run("yoga", ["Yoga Mat", "Yoga Block"], client_id="c1")

        assert isinstance(kit, StarterKit)
        assert [g.product_type for g in kit.groups] == ["Yoga Mat", "Yoga Block"]
        assert sorted(pipeline.search_client.queries) == ["yoga Yoga Block", "yoga Yoga Mat"]

    def test_tiers_and_affiliate_links(self, make_pipeline):
        pipeline = make_pipeline({"yoga Yoga Mat": MAT_RECORDS})
        kit = pipeline.run("yoga", ["Yoga Mat"])

        group = kit.groups[0]
        assert group.tier_names == ["essential", "premium", "luxury"]
        essential = group.get(Tier.ESSENTIAL)
        assert essential.name == "Gaiam Yoga Mat"
        assert essential.price == "$21.98"
        assert essential.link == "https://www.amazon.com/dp/B0MAT00001?tag=kit-20"
        assert group.get(Tier.LUXURY).name == "Manduka Yoga Mat 6mm"

    def test_no_url_shared_across_categories(self, make_pipeline):
        pipeline = make_pipeline({"yoga Yoga Mat": MAT_RECORDS, "yoga Yoga Block": BLOCK_RECORDS})
        kit = pipeline.run("yoga", ["Yoga Mat", "Yoga Block"])
        assert len(kit.links) == len(set(kit.links))

    def test_acquisition_failure_isolated(self, make_pipeline):
        pipeline = make_pipeline({
            "yoga Yoga Mat": MAT_RECORDS,
            "yoga Yoga Strap": AcquisitionError("Network error", query="yoga Yoga Strap"),
        })
        kit = pipeline.run("yoga", ["Yoga Strap", "Yoga Mat"])
        assert [g.product_type for g in kit.groups] == ["Yoga Mat"]

    def test_auth_failure_isolated(self, make_pipeline):
        pipeline = make_pipeline({
            "yoga Yoga Mat": AcquisitionError("denied", status_code=403),
        })
        kit = pipeline.run("yoga", ["Yoga Mat"])
        assert kit.groups == []

    def test_empty_categories(self, make_pipeline):
        pipeline = make_pipeline({})
        kit = pipeline.run("yoga", ["", "  "])
        assert kit.groups == []
        assert pipeline.search_client.queries == []

    def test_duplicate_labels_searched_once(self, make_pipeline):
        pipeline = make_pipeline({"yoga Yoga Mat": MAT_RECORDS})
        kit = pipeline.run("yoga", ["Yoga Mat", "yoga mat", " Yoga  Mat "])
        assert len(kit.groups) == 1
        assert pipeline.search_client.queries == ["yoga Yoga Mat"]

    def test_rate_limit_checked_before_acquisition(self, make_pipeline):
        pipeline = make_pipeline({"yoga Yoga Mat": MAT_RECORDS})
        pipeline.run("yoga", ["Yoga Mat"], client_id="c1")
        pipeline.run("yoga", ["Yoga Mat"], client_id="c1")
        with pytest.raises(RateLimitExceeded) as exc_info:
            pipeline.run("yoga", ["Yoga Mat"], client_id="c1")
        assert exc_info.value.retry_after >= 1
        assert len(pipeline.search_client.queries) == 2

    def test_price_bounds_applied(self, make_pipeline):
        pipeline = make_pipeline({"yoga Yoga Mat": MAT_RECORDS})
        kit = pipeline.run("yoga", ["Yoga Mat"], price_ceiling=100)
        assert "Manduka Yoga Mat 6mm" not in [t.name for t in kit.groups[0].tiers]

    def test_reasons_filled(self, make_pipeline):
        pipeline = make_pipeline({"yoga Yoga Mat": MAT_RECORDS}, reason_writer=FakeReasonWriter())
        kit = pipeline.run("yoga", ["Yoga Mat"], persona=PersonaHints(experience_level="beginner"))
        assert {t.reason_for_inclusion for t in kit.groups[0].tiers} == {"Yoga Mat for yoga"}

    def test_no_reason_writer_leaves_slot_empty(self, make_pipeline):
        pipeline = make_pipeline({"yoga Yoga Mat": MAT_RECORDS})
        kit = pipeline.run("yoga", ["Yoga Mat"])
        assert all(t.reason_for_inclusion == "" for t in kit.groups[0].tiers)

    def test_explanations(self, make_pipeline):
        pipeline = make_pipeline({"yoga Yoga Mat": MAT_RECORDS})
        kit = pipeline.run("yoga", ["Yoga Mat"], explanations={"Yoga Mat": "Cushions joints."})
        assert kit.groups[0].explanation == "Cushions joints."

    def test_deterministic(self, make_pipeline):
        responses = {"yoga Yoga Mat": MAT_RECORDS, "yoga Yoga Block": BLOCK_RECORDS}
        first = make_pipeline(responses).run("yoga", ["Yoga Mat", "Yoga Block"])
        second = make_pipeline(responses).run("yoga", ["Yoga Mat", "Yoga Block"], client_id="other")
        assert first.model_dump(exclude={"generated_at"}) == second.model_dump(exclude={"generated_at"})


class TestSelectOffline:
    def test_runs_without_client(self, selector_config):
        result = select_offline(MAT_RECORDS, SelectionContext("Yoga Mat"), selector_config)
        assert result.tiers == ["essential", "premium", "luxury"]
        assert result.candidate_pool_size == 3


class TestCLI:
    def test_select_mode_writes_output(self, tmp_path, fixtures_dir):
        output = tmp_path / "result.json"
        cli.main([
            "--mode", "select",
            "--category", "Yoga Mat",
            "--activity", "yoga",
            "--candidates-file", str(fixtures_dir / "search_response.json"),
            "--output", str(output),
        ])
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["product_type"] == "Yoga Mat"
        assert [a["tier"] for a in data["assignments"]] == ["essential", "luxury"]

    def test_select_mode_requires_file(self):
        with pytest.raises(SystemExit):
            cli.main(["--mode", "select", "--category", "Yoga Mat"])

    def test_kit_mode_missing_key_exits_2(self, monkeypatch):
        monkeypatch.delenv("RAPIDAPI_KEY", raising=False)
        monkeypatch.delenv("USER_PROVIDED_RAPIDAPI_KEY", raising=False)
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--activity", "yoga", "--category", "Yoga Mat", "--no-reasons"])
        assert exc_info.value.code == 2

    def test_kit_mode_rate_limited_exits_1(self, monkeypatch, tmp_path):
        fake = MagicMock()
        fake.run.side_effect = RateLimitExceeded("cli", 12)
        monkeypatch.setattr(cli, "KitPipeline", MagicMock(return_value=fake))
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--activity", "yoga", "--category", "Yoga Mat"])
        assert exc_info.value.code == 1

    def test_kit_mode_output(self, monkeypatch, tmp_path, make_pipeline):
        pipeline = make_pipeline({"yoga Yoga Mat": MAT_RECORDS})
        monkeypatch.setattr(cli, "KitPipeline", MagicMock(return_value=pipeline))
        output = tmp_path / "kit.json"
        cli.main(["--activity", "yoga", "--category", "Yoga Mat", "--output", str(output)])
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["activity"] == "yoga"
        assert data["groups"][0]["tiers"][0]["tier"] == "essential"


class TestMalformedResponses:
    def test_bad_body_only_loses_its_category(self, monkeypatch, selector_config, limiter):
        monkeypatch.setenv("RAPIDAPI_KEY", "test-key")
        session = MagicMock(spec=requests.Session)

        def fake_get(url, params=None, **kwargs):
            resp = MagicMock()
            resp.status_code = 200
            resp.raise_for_status.return_value = None
            if params["query"] == "yoga Yoga Mat":
                resp.json.return_value = {"status": "OK", "data": {"products": MAT_RECORDS}}
            else:
                resp.json.return_value = {"status": "ERROR", "data": "quota exhausted"}
            return resp

        session.get.side_effect = fake_get
        config = Config(max_workers=4)
        settings = Settings()
        http = HTTPClient(config, session=session, sleep=lambda _: None)
        pipeline = KitPipeline(
            config,
            settings=settings,
            selector_config=selector_config,
            search_client=ListingSearchClient(config, settings, http_client=http),
            rate_limiter=limiter,
            affiliate_tag="kit-20",
            write_reasons=False,
        )

        kit = pipeline.run("yoga", ["Yoga Strap", "Yoga Mat"])
        assert [g.product_type for g in kit.groups] == ["Yoga Mat"]

    def test_unexpected_client_error_only_loses_its_category(self, make_pipeline):
        pipeline = make_pipeline({
            "yoga Yoga Mat": MAT_RECORDS,
            "yoga Yoga Strap": AttributeError("'str' object has no attribute 'get'"),
        })
        kit = pipeline.run("yoga", ["Yoga Strap", "Yoga Mat"])
        assert [g.product_type for g in kit.groups] == ["Yoga Mat"]

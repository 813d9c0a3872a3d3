"""CLI entry point for the starter kit builder.

Usage:
    # Full kit: search the marketplace for each category and pick tiers
    python -m src.kit_engine.kit_builder.main --activity "rock climbing" \
        --category "Climbing Shoes" --category "Chalk Bag" --output kit.json

    # Offline selection over a saved search response (no API key needed)
    python -m src.kit_engine.kit_builder.main --mode select \
        --category "Yoga Mat" --candidates-file tests/fixtures/search_response.json
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from src.common.errors import ConfigurationError, RateLimitExceeded
from src.common.logging import setup_logging
from src.common.models import PersonaHints

from ..common.config import Config
from ..tier_selector import SelectionContext, SelectorConfig
from .pipeline import KitPipeline, load_selector_config, select_offline

logger = logging.getLogger(__name__)


def _persona(args: argparse.Namespace) -> PersonaHints | None:
    if not (args.age or args.level):
        return None
    return PersonaHints(age_band=args.age or "", experience_level=args.level or "")


def _selector_config(args: argparse.Namespace, config: Config) -> SelectorConfig:
    if args.selector_config:
        return SelectorConfig.from_yaml(args.selector_config)
    return load_selector_config(config)


def _load_records(path: str) -> list[dict[str, Any]]:
    """Accept a bare list of records or a raw search API response."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = (data.get("data") or {}).get("products", [])
    if not isinstance(data, list):
        raise SystemExit(f"Error: {path} holds no list of product records")
    return data


def _write_output(payload: dict, output: str | None) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2, default=str)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        logger.info("Output written to %s", output)
    else:
        print(text)


def _run_kit(args: argparse.Namespace) -> None:
    """Full pipeline: rate limit → acquisition → selection → content."""
    if not args.activity or not args.category:
        raise SystemExit("Error: --activity and at least one --category are required for 'kit' mode")

    config = Config()
    pipeline = KitPipeline(
        config,
        selector_config=_selector_config(args, config),
        write_reasons=not args.no_reasons,
    )
    kit = pipeline.run(
        args.activity,
        args.category,
        client_id=args.client_id,
        persona=_persona(args),
        price_floor=args.min_price,
        price_ceiling=args.max_price,
    )

    for group in kit.groups:
        logger.info("=== %s ===", group.product_type)
        for product in group.tiers:
            logger.info(
                "  %-9s %s — %s (%.1f, %d reviews)",
                product.tier.value,
                product.name[:70],
                product.price,
                product.rating,
                product.reviews,
            )

    _write_output(kit.model_dump(mode="json"), args.output)


def _run_select(args: argparse.Namespace) -> None:
    """Offline selection for one category from a JSON file of records."""
    if not args.candidates_file or not args.category:
        raise SystemExit("Error: --candidates-file and --category are required for 'select' mode")
    if len(args.category) > 1:
        logger.warning("'select' mode uses only the first --category: %s", args.category[0])

    context = SelectionContext(
        product_type=args.category[0],
        base_keywords=args.activity or "",
        price_floor=args.min_price,
        price_ceiling=args.max_price,
        persona=_persona(args),
    )
    records = _load_records(args.candidates_file)
    result = select_offline(records, context, _selector_config(args, Config()))

    logger.info(
        "Candidate pool: %d records, %d after filtering",
        result.candidate_pool_size,
        result.filtered_pool_size,
    )
    for assignment in result.assignments:
        logger.info(
            "  %-9s %s — %s",
            assignment.tier,
            assignment.listing.title[:70],
            assignment.listing.display_price,
        )
        for reason in assignment.selection_reasons:
            logger.info("    - %s", reason)

    _write_output(result.to_dict(), args.output)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Starter kit builder: price-tiered product picks per category"
    )
    parser.add_argument(
        "--mode",
        choices=["kit", "select"],
        default="kit",
        help="'kit' (search + select every category) or 'select' (offline, one category)",
    )
    parser.add_argument("--activity", type=str, help="Activity, e.g. 'rock climbing'")
    parser.add_argument(
        "--category",
        action="append",
        default=[],
        help="Product category label (repeatable)",
    )
    parser.add_argument("--client-id", type=str, default="cli", help="[kit] Rate limit identity")
    parser.add_argument("--age", type=str, help="Persona age band, e.g. '8-12' or 'senior'")
    parser.add_argument("--level", type=str, help="Persona experience level, e.g. 'beginner'")
    parser.add_argument("--min-price", type=float, help="Lower price bound")
    parser.add_argument("--max-price", type=float, help="Upper price bound")
    parser.add_argument(
        "--candidates-file",
        type=str,
        help="[select] JSON file: list of product records or a raw search response",
    )
    parser.add_argument("--selector-config", type=str, help="Selector YAML (default config/selector.yaml)")
    parser.add_argument("--no-reasons", action="store_true", help="[kit] Skip reason-for-inclusion text")
    parser.add_argument("--output", type=str, help="Output JSON file path (default: stdout)")
    parser.add_argument("--log-level", type=str, help="Logging level (default: LOG_LEVEL or INFO)")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, module_name="src")

    try:
        if args.mode == "select":
            _run_select(args)
        else:
            _run_kit(args)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        raise SystemExit(2) from e
    except RateLimitExceeded as e:
        logger.error("%s (retry after %ds)", e, e.retry_after)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Batch place seeding script.

Searches the configured map provider for every category in every city and
stores the results in the place store, skipping duplicates.

Usage:
    python scripts/seed_places.py --category 다이소 --city 서울 --city 부산
    python scripts/seed_places.py -c 스타벅스 -c 올리브영 --cities-file cities.txt --clear
    python scripts/seed_places.py -c 다이소 --city 서울 --dry-run
"""
import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

# Ensure the midway package is importable when running from repo root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from midway.config import get_settings
from midway.db import get_db_context
from midway.places.seeding import DEFAULT_RESULTS_PER_SEARCH, SeedSummary, seed_places
from midway.providers.factory import build_providers

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("seed_places")

DEFAULT_CITIES = ["서울", "부산", "대구", "인천", "광주", "대전", "울산", "세종", "수원", "성남"]


def read_cities_file(path: str) -> List[str]:
    """One city per line; blank lines and # comments ignored."""
    with open(path, "r", encoding="utf-8") as f:
        return [
            line.strip() for line in f
            if line.strip() and not line.strip().startswith("#")
        ]


async def run_seed(
    categories: List[str],
    cities: List[str],
    clear_existing: bool = False,
    max_results: int = DEFAULT_RESULTS_PER_SEARCH,
    dry_run: bool = False,
) -> SeedSummary:
    providers = build_providers(get_settings())
    try:
        with get_db_context() as db:
            return await seed_places(
                db,
                providers.search,
                categories=categories,
                cities=cities,
                clear_existing=clear_existing,
                max_results=max_results,
                dry_run=dry_run,
            )
    finally:
        await providers.aclose()


def print_summary(summary: SeedSummary, dry_run: bool = False) -> None:
    """Print the final summary."""
    title = "PLACE SEEDING SUMMARY" + (" (DRY RUN)" if dry_run else "")
    print(f"\n{'='*50}")
    print(f"  {title}")
    print(f"{'='*50}")
    print(f"  Searches run:             {summary.searches_run}")
    print(f"  Search failures:          {summary.search_failures}")
    print(f"  Places found:             {summary.places_found}")
    print(f"  Places deleted:           {summary.places_deleted}")
    print(f"  Places created:           {summary.places_created}")
    if summary.breakdown:
        print(f"\n  By category:")
        for category, count in summary.breakdown.items():
            print(f"    {category:<20} {count}")
    if summary.errors:
        print(f"\n  Errors ({len(summary.errors)}):")
        for err in summary.errors[:10]:
            print(f"    - {err}")
        if len(summary.errors) > 10:
            print(f"    ... and {len(summary.errors) - 10} more")
    print(f"{'='*50}\n")


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="Seed the place store from map provider keyword search.",
    )
    parser.add_argument(
        "--category", "-c", action="append", required=True,
        help="Category / brand to search for (repeatable)",
    )
    parser.add_argument(
        "--city", action="append", default=None,
        help="City or region to search in (repeatable, default: major Korean cities)",
    )
    parser.add_argument(
        "--cities-file", default=None,
        help="File with one city per line",
    )
    parser.add_argument(
        "--clear", action="store_true",
        help="Delete existing places in these categories first",
    )
    parser.add_argument(
        "--limit", "-n", type=int, default=DEFAULT_RESULTS_PER_SEARCH,
        help="Maximum results per search",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Search but do not write to the database",
    )
    args = parser.parse_args(argv)

    cities = list(args.city or [])
    if args.cities_file:
        if not os.path.exists(args.cities_file):
            print(f"Error: file not found: {args.cities_file}", file=sys.stderr)
            sys.exit(1)
        cities.extend(read_cities_file(args.cities_file))
    if not cities:
        cities = DEFAULT_CITIES

    summary = asyncio.run(run_seed(
        categories=args.category,
        cities=cities,
        clear_existing=args.clear,
        max_results=args.limit,
        dry_run=args.dry_run,
    ))
    print_summary(summary, dry_run=args.dry_run)


if __name__ == "__main__":
    main()

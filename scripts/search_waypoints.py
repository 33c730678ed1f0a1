#!/usr/bin/env python3
"""
One-shot waypoint search from the command line.

Usage:
    python scripts/search_waypoints.py --start "37.5663,126.9779" --end 강남역 --category 다이소
    python scripts/search_waypoints.py -s 서울역 -e 판교역 -c 스타벅스 --max-results 5 --buffer 500
"""
import argparse
import asyncio
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Union

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from midway.config import get_settings
from midway.db import SessionLocal
from midway.detours.calculator import DetourCalculator
from midway.detours.service import DetourSearchService, SearchResult
from midway.errors import MidwayError
from midway.geo.types import Coordinate
from midway.places.store import SqlPlaceStore
from midway.providers.factory import build_providers
from midway.utils.format import (
    format_detour_info,
    format_distance,
    format_duration,
    parse_coordinates,
)

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s %(levelname)-8s %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("search_waypoints")


def parse_location(text: str) -> Union[Coordinate, str]:
    """"lat,lng" becomes a Coordinate; anything else is geocoded as an address."""
    return parse_coordinates(text) or text


async def run_search(
    start: Union[Coordinate, str],
    end: Union[Coordinate, str],
    category: str,
    options: Dict[str, Any],
) -> SearchResult:
    settings = get_settings()
    providers = build_providers(settings)
    try:
        calculator = DetourCalculator(
            providers.directions,
            SqlPlaceStore(SessionLocal),
            max_concurrency=settings.max_concurrent_route_requests,
        )
        service = DetourSearchService(
            providers.directions, providers.geocoding, calculator, settings,
        )
        return await service.search(start, end, category, options)
    finally:
        await providers.aclose()


def print_result(result: SearchResult) -> None:
    route = result.original_route
    print(f"\nDirect route: {format_distance(route.distance)}, {format_duration(route.duration)}")
    print(
        f"Candidates: {result.total_candidates}  "
        f"API calls: {result.api_calls_used}  "
        f"Took: {result.duration_ms} ms\n"
    )
    if not result.results:
        print("  No waypoints found.\n")
        return
    for i, r in enumerate(result.results, start=1):
        print(f"  {i:>2}. {r.place.name}  [{r.final_score:.1f}]")
        print(f"      {r.place.road_address or r.place.address}")
        print(
            f"      {format_detour_info(r.detour_cost.distance, r.detour_cost.duration)}"
            f"  proximity {r.proximity_score:.0f}"
        )
    print()


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Find waypoints with the smallest detour.")
    parser.add_argument("--start", "-s", required=True, help='"lat,lng" or an address')
    parser.add_argument("--end", "-e", required=True, help='"lat,lng" or an address')
    parser.add_argument("--category", "-c", required=True, help="Category / brand to stop at")
    parser.add_argument("--max-results", type=int, default=None)
    parser.add_argument("--buffer", type=float, default=None, help="Buffer distance in meters")
    parser.add_argument("--max-detour", type=float, default=None, help="Maximum detour in meters")
    args = parser.parse_args(argv)

    options: Dict[str, Any] = {}
    if args.max_results is not None:
        options["maxResults"] = args.max_results
    if args.buffer is not None:
        options["bufferDistance"] = args.buffer
    if args.max_detour is not None:
        options["maxDetourDistance"] = args.max_detour

    try:
        result = asyncio.run(run_search(
            parse_location(args.start),
            parse_location(args.end),
            args.category,
            options,
        ))
    except MidwayError as e:
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        sys.exit(1)

    print_result(result)


if __name__ == "__main__":
    main()

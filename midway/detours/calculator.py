"""
Detour cost calculation and ranking.

Runs the pipeline for one original route: sample the polyline, filter stored
places spatially, score proximity, then fetch A->C and C->B routes for the
survivors and rank them by added distance/time blended with proximity.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from midway.detours.proximity import ScoredPlace, filter_by_proximity
from midway.detours.sampler import optimal_sample_interval, sample_polyline
from midway.detours.spatial_filter import filter_places_by_route
from midway.geo.types import Coordinate, Place, Route
from midway.places.store import PlaceStore
from midway.providers.base import DirectionsProvider

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_DISTANCE_M = 1000.0
DEFAULT_MAX_DETOUR_DISTANCE_M = 5000.0
PROXIMITY_TOP_N = 20
MAX_RANKED_RESULTS = 10

# Added duration is normalized against ten minutes.
DURATION_REFERENCE_S = 600.0
DISTANCE_WEIGHT = 60.0
DURATION_WEIGHT = 40.0
COST_WEIGHT = 0.7
PROXIMITY_WEIGHT = 0.3


@dataclass
class DetourCost:
    """Increase over the direct route. May be slightly negative."""
    distance: float
    duration: float
    cost_score: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "distance": self.distance,
            "duration": self.duration,
            "costScore": self.cost_score,
        }


@dataclass
class DetourResult:
    place: Place
    detour_cost: DetourCost
    original_route: Route
    to_waypoint: Route
    from_waypoint: Route
    proximity_score: float
    final_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "place": self.place.to_dict(),
            "detourCost": self.detour_cost.to_dict(),
            "routes": {
                "original": self.original_route.to_dict(),
                "toWaypoint": self.to_waypoint.to_dict(),
                "fromWaypoint": self.from_waypoint.to_dict(),
            },
            "proximityScore": self.proximity_score,
            "finalScore": self.final_score,
        }


@dataclass
class DetourOptions:
    buffer_distance: float = DEFAULT_BUFFER_DISTANCE_M
    max_detour_distance: float = DEFAULT_MAX_DETOUR_DISTANCE_M
    sample_interval: Optional[float] = None


@dataclass
class DetourCalculation:
    results: List[DetourResult] = field(default_factory=list)
    total_candidates: int = 0
    api_calls_used: int = 1


def cost_score(
    detour_distance: float,
    detour_duration: float,
    max_detour_distance: float,
) -> float:
    """Bounded cost in [0, 100]: 60% distance against the cap, 40% time against 10 min."""
    score = (
        (detour_distance / max_detour_distance) * DISTANCE_WEIGHT
        + (detour_duration / DURATION_REFERENCE_S) * DURATION_WEIGHT
    )
    return min(100.0, score)


def final_score(cost: float, proximity: float) -> float:
    return (100.0 - cost) * COST_WEIGHT + proximity * PROXIMITY_WEIGHT


class DetourCalculator:
    """
    Ranks waypoint candidates for a route.

    Outbound directions calls are bounded by ``max_concurrency``.
    """

    def __init__(
        self,
        directions: DirectionsProvider,
        place_store: PlaceStore,
        max_concurrency: int = 6,
    ):
        self.directions = directions
        self.place_store = place_store
        self.max_concurrency = max(1, max_concurrency)

    async def calculate_detour_costs(
        self,
        original_route: Route,
        category: str,
        options: Optional[DetourOptions] = None,
    ) -> DetourCalculation:
        """
        Top detour results for ``category`` along ``original_route``.

        ``api_calls_used`` counts the original route call plus two calls per
        candidate that reached routing, whether or not it survived.
        StorageUnavailable from the spatial filter propagates; per-candidate
        routing failures only drop that candidate.
        """
        options = options or DetourOptions()
        interval = options.sample_interval or optimal_sample_interval(original_route.distance)

        sampled = sample_polyline(original_route.path, interval)
        logger.info(
            f"Sampled {len(sampled)} points from {len(original_route.path)} "
            f"at {interval:.0f}m intervals"
        )

        spatial = await filter_places_by_route(
            self.place_store, original_route, category, options.buffer_distance,
        )
        if not spatial:
            logger.info(f"No spatial candidates for category={category!r}")
            return DetourCalculation(results=[], total_candidates=0, api_calls_used=1)

        proximity = filter_by_proximity(spatial, sampled, original_route, top_n=PROXIMITY_TOP_N)
        logger.info(f"Proximity filter: {len(proximity)}/{len(spatial)} candidates kept")
        if not proximity:
            return DetourCalculation(results=[], total_candidates=len(spatial), api_calls_used=1)

        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [
            self._evaluate_candidate(original_route, candidate, options.max_detour_distance, semaphore)
            for candidate in proximity
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: List[DetourResult] = []
        for candidate, outcome in zip(proximity, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(f"Detour routing failed for {candidate.place.name}: {outcome}")
                continue
            if outcome is not None:
                results.append(outcome)

        results.sort(key=lambda r: r.final_score, reverse=True)
        top = results[:MAX_RANKED_RESULTS]
        api_calls = 1 + len(proximity) * 2

        for rank, r in enumerate(top[:3], start=1):
            logger.info(
                f"#{rank} {r.place.name}: +{r.detour_cost.distance:.0f}m "
                f"+{r.detour_cost.duration:.0f}s final={r.final_score:.2f}"
            )
        logger.info(
            "detours.calculate_detour_costs",
            extra={
                "category": category,
                "sampled_points": len(sampled),
                "spatial_candidates": len(spatial),
                "proximity_candidates": len(proximity),
                "routed_results": len(results),
                "result_count": len(top),
                "api_calls_used": api_calls,
            },
        )

        return DetourCalculation(
            results=top,
            total_candidates=len(spatial),
            api_calls_used=api_calls,
        )

    async def calculate_single_detour_cost(
        self,
        original_route: Route,
        waypoint: Coordinate,
    ) -> DetourCost:
        """Cost of passing through ``waypoint`` with the default 5 km cap. Provider errors propagate."""
        to_route, from_route = await asyncio.gather(
            self.directions.get_route(original_route.start, waypoint),
            self.directions.get_route(waypoint, original_route.end),
        )
        distance, duration = _added(original_route, to_route, from_route)
        return DetourCost(
            distance=distance,
            duration=duration,
            cost_score=cost_score(distance, duration, DEFAULT_MAX_DETOUR_DISTANCE_M),
        )

    async def _fetch_legs(
        self,
        original_route: Route,
        waypoint: Coordinate,
        semaphore: asyncio.Semaphore,
    ) -> Tuple[Route, Route]:
        async def leg(start: Coordinate, end: Coordinate) -> Route:
            async with semaphore:
                return await self.directions.get_route(start, end)

        return await asyncio.gather(
            leg(original_route.start, waypoint),
            leg(waypoint, original_route.end),
        )

    async def _evaluate_candidate(
        self,
        original_route: Route,
        candidate: ScoredPlace,
        max_detour_distance: float,
        semaphore: asyncio.Semaphore,
    ) -> Optional[DetourResult]:
        place = candidate.place
        to_route, from_route = await self._fetch_legs(original_route, place.coordinates, semaphore)
        distance, duration = _added(original_route, to_route, from_route)

        if distance > max_detour_distance:
            logger.info(
                f"Dropping {place.name}: detour {distance:.0f}m exceeds {max_detour_distance:.0f}m"
            )
            return None

        cost = cost_score(distance, duration, max_detour_distance)
        return DetourResult(
            place=place,
            detour_cost=DetourCost(distance=distance, duration=duration, cost_score=cost),
            original_route=original_route,
            to_waypoint=to_route,
            from_waypoint=from_route,
            proximity_score=candidate.proximity_score,
            final_score=final_score(cost, candidate.proximity_score),
        )


def _added(original: Route, to_route: Route, from_route: Route) -> Tuple[float, float]:
    return (
        to_route.distance + from_route.distance - original.distance,
        to_route.duration + from_route.duration - original.duration,
    )

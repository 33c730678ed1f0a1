"""
Waypoint search: validate input, resolve locations, fetch the direct route,
then rank detour candidates.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import pydantic

from midway.config import Settings
from midway.detours.calculator import DetourCalculator, DetourOptions, DetourResult
from midway.detours.schemas import SearchOptions
from midway.errors import (
    InternalError,
    InvalidCoordinates,
    MidwayError,
    NoRouteFound,
    ValidationError,
)
from midway.geo.distance import is_valid_coordinate
from midway.geo.types import Coordinate, Route
from midway.providers.base import DirectionsProvider, GeocodingProvider

logger = logging.getLogger(__name__)

Location = Union[Coordinate, str]


@dataclass
class SearchResult:
    original_route: Route
    results: List[DetourResult] = field(default_factory=list)
    total_candidates: int = 0
    api_calls_used: int = 1
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalRoute": self.original_route.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "totalCandidates": self.total_candidates,
            "apiCallsUsed": self.api_calls_used,
            "durationMs": self.duration_ms,
        }


def _validation_details(e: pydantic.ValidationError) -> List[Dict[str, Any]]:
    return [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in e.errors()
    ]


class DetourSearchService:
    """Entry point for a waypoint search. Providers are fixed at construction."""

    def __init__(
        self,
        directions: DirectionsProvider,
        geocoding: GeocodingProvider,
        calculator: DetourCalculator,
        settings: Settings,
    ):
        self.directions = directions
        self.geocoding = geocoding
        self.calculator = calculator
        self.settings = settings

    def _validate(
        self,
        start: Location,
        end: Location,
        category: str,
        options: Optional[Dict[str, Any]],
    ) -> SearchOptions:
        if not category or not category.strip():
            raise ValidationError(
                "category is required",
                details=[{"field": "category", "message": "must not be empty"}],
            )
        for name, location in (("start", start), ("end", end)):
            if isinstance(location, Coordinate):
                if not is_valid_coordinate(location.lat, location.lng):
                    raise ValidationError(
                        f"{name} coordinates out of range",
                        details=[{"field": f"{name}.coordinates", "message": "out of range"}],
                    )
            elif not isinstance(location, str) or not location.strip():
                raise ValidationError(
                    f"{name} requires an address or coordinates",
                    details=[{"field": name, "message": "address or coordinates required"}],
                )
        try:
            return SearchOptions.model_validate(options or {})
        except pydantic.ValidationError as e:
            raise ValidationError("Invalid search options", details=_validation_details(e)) from e

    async def _resolve(self, location: Location) -> Coordinate:
        if isinstance(location, Coordinate):
            return location
        try:
            coord = await self.geocoding.geocode_address(location)
        except MidwayError as e:
            raise InvalidCoordinates(
                f"Could not resolve address {location!r}",
                details={"address": location, "reason": e.code},
            ) from e
        if not is_valid_coordinate(coord.lat, coord.lng):
            raise InvalidCoordinates(f"Geocoded coordinates out of range for {location!r}")
        return coord

    async def search(
        self,
        start: Location,
        end: Location,
        category: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> SearchResult:
        """
        Ranked waypoints between ``start`` and ``end``.

        Locations are coordinates or addresses. ``options`` accepts
        maxResults (1-50), bufferDistance (100-10000 m) and
        maxDetourDistance (500-50000 m).
        """
        started = time.monotonic()
        opts = self._validate(start, end, category, options)
        category = category.strip()

        try:
            start_coord = await self._resolve(start)
            end_coord = await self._resolve(end)

            try:
                original = await self.directions.get_route(start_coord, end_coord)
            except InvalidCoordinates:
                raise
            except MidwayError as e:
                raise NoRouteFound(
                    f"No route between start and end: {e.message}",
                    details={"reason": e.code},
                ) from e

            calculation = await self.calculator.calculate_detour_costs(
                original,
                category,
                DetourOptions(
                    buffer_distance=opts.buffer_distance or self.settings.default_buffer_distance_m,
                    max_detour_distance=(
                        opts.max_detour_distance or self.settings.default_max_detour_distance_m
                    ),
                ),
            )
        except MidwayError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error during search for category={category!r}")
            raise InternalError("An unexpected error occurred") from e

        max_results = opts.max_results or self.settings.default_max_results
        result = SearchResult(
            original_route=original,
            results=calculation.results[:max_results],
            total_candidates=calculation.total_candidates,
            api_calls_used=calculation.api_calls_used,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        logger.info(
            "detours.search",
            extra={
                "category": category,
                "total_candidates": result.total_candidates,
                "result_count": len(result.results),
                "api_calls_used": result.api_calls_used,
                "duration_ms": result.duration_ms,
            },
        )
        return result

"""
Map provider interfaces.

A backend implements directions, geocoding and keyword place search. The
pipeline depends only on these interfaces; the concrete backend is chosen
once from configuration (see providers.factory).
"""
import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from midway.geo.types import Coordinate, Place, Route


class RouteOption(str, enum.Enum):
    optimal = "optimal"
    fast = "fast"
    comfort = "comfort"


class DirectionsProvider(ABC):

    @abstractmethod
    async def get_route(
        self,
        start: Coordinate,
        end: Coordinate,
        option: RouteOption = RouteOption.optimal,
    ) -> Route:
        """
        Driving route from start to end.

        Raises NoRouteFound, NetworkError, RateLimited or InvalidCoordinates.
        """


class GeocodingProvider(ABC):

    @abstractmethod
    async def geocode_address(self, address: str) -> Coordinate:
        """Raises NoAddressFound when nothing matches."""

    @abstractmethod
    async def reverse_geocode(self, coord: Coordinate) -> str:
        """Road address preferred, lot address otherwise."""


class SearchProvider(ABC):

    @abstractmethod
    async def search_places(
        self,
        query: str,
        max_results: int = 100,
        center: Optional[Coordinate] = None,
        radius_m: Optional[int] = None,
    ) -> List[Place]:
        """Keyword search. Returned places carry ``query`` as their category."""

    async def search_places_by_region(
        self, query: str, region: str, max_results: int = 100
    ) -> List[Place]:
        places = await self.search_places(f"{query} {region}", max_results=max_results)
        # Category is the bare query, not the region-qualified one.
        return [
            Place(
                id=p.id,
                name=p.name,
                category=query,
                address=p.address,
                coordinates=p.coordinates,
                road_address=p.road_address,
                phone=p.phone,
            )
            for p in places
        ]


@dataclass
class MapProviders:
    """The set of providers one backend supplies."""
    kind: str
    directions: DirectionsProvider
    geocoding: GeocodingProvider
    search: SearchProvider

    async def aclose(self) -> None:
        seen = set()
        for provider in (self.directions, self.geocoding, self.search):
            if id(provider) in seen:
                continue
            seen.add(id(provider))
            close = getattr(provider, "aclose", None)
            if close is not None:
                await close()

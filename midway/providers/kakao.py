"""
Kakao backend: Kakao Mobility directions and Kakao Local search/geocoding.

All endpoints authenticate with ``Authorization: KakaoAK <REST API key>``.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from midway.config import Settings
from midway.errors import NoAddressFound, NoRouteFound, ValidationError
from midway.geo.distance import validate_coordinate
from midway.geo.types import Coordinate, Place, Route, RoutePoint
from midway.providers.base import (
    DirectionsProvider,
    GeocodingProvider,
    RouteOption,
    SearchProvider,
)
from midway.providers.http import build_client, get_json

logger = logging.getLogger(__name__)

DIRECTIONS_URL = "https://apis-navi.kakaomobility.com/v1/directions"
LOCAL_BASE_URL = "https://dapi.kakao.com/v2/local"

PRIORITY = {
    RouteOption.optimal: "RECOMMEND",
    RouteOption.fast: "FAST",
    RouteOption.comfort: "COMFORT",
}

PAGE_SIZE = 15
MAX_PAGES = 3


class KakaoMapProvider(DirectionsProvider, GeocodingProvider, SearchProvider):

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.kakao_rest_api_key
        if not self.api_key:
            logger.warning("KAKAO_REST_API_KEY not set; Kakao calls will fail")
        self.client = build_client(
            settings,
            headers={"Authorization": f"KakaoAK {self.api_key}"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    # ---- directions ----

    async def get_route(
        self,
        start: Coordinate,
        end: Coordinate,
        option: RouteOption = RouteOption.optimal,
    ) -> Route:
        validate_coordinate(start)
        validate_coordinate(end)

        data = await get_json(self.client, DIRECTIONS_URL, params={
            "origin": f"{start.lng},{start.lat}",
            "destination": f"{end.lng},{end.lat}",
            "priority": PRIORITY[option],
        })

        routes = data.get("routes") or []
        if not routes:
            raise NoRouteFound("No route returned by Kakao directions")
        route = routes[0]
        if route.get("result_code", 0) != 0:
            raise NoRouteFound(
                route.get("result_msg") or "No route found",
                details={"result_code": route.get("result_code")},
            )

        summary = route.get("summary") or {}
        return Route(
            start=start,
            end=end,
            distance=float(summary.get("distance", 0)),
            duration=float(summary.get("duration", 0)),
            path=_route_path(route),
        )

    # ---- geocoding ----

    async def geocode_address(self, address: str) -> Coordinate:
        if not address or not address.strip():
            raise ValidationError("Address must not be empty")

        data = await get_json(
            self.client, f"{LOCAL_BASE_URL}/search/address.json",
            params={"query": address},
        )
        documents = data.get("documents") or []
        if not documents:
            raise NoAddressFound(f"No coordinates found for {address!r}")
        doc = documents[0]
        coord = Coordinate(lat=float(doc["y"]), lng=float(doc["x"]))
        validate_coordinate(coord)
        return coord

    async def reverse_geocode(self, coord: Coordinate) -> str:
        validate_coordinate(coord)
        data = await get_json(
            self.client, f"{LOCAL_BASE_URL}/geo/coord2address.json",
            params={"x": coord.lng, "y": coord.lat},
        )
        for doc in data.get("documents") or []:
            road = doc.get("road_address") or {}
            if road.get("address_name"):
                return road["address_name"]
            lot = doc.get("address") or {}
            if lot.get("address_name"):
                return lot["address_name"]
        raise NoAddressFound(f"No address found for ({coord.lat}, {coord.lng})")

    # ---- search ----

    async def search_places(
        self,
        query: str,
        max_results: int = 100,
        center: Optional[Coordinate] = None,
        radius_m: Optional[int] = None,
    ) -> List[Place]:
        if not query or not query.strip():
            raise ValidationError("Search query must not be empty")

        places: List[Place] = []
        for page in range(1, MAX_PAGES + 1):
            params: Dict[str, Any] = {"query": query, "page": page, "size": PAGE_SIZE}
            if center is not None:
                params["x"] = center.lng
                params["y"] = center.lat
                params["sort"] = "distance"
                if radius_m:
                    params["radius"] = min(int(radius_m), 20000)

            data = await get_json(
                self.client, f"{LOCAL_BASE_URL}/search/keyword.json", params=params,
            )
            for doc in data.get("documents") or []:
                place = _document_to_place(doc, query)
                if place is not None:
                    places.append(place)

            if (data.get("meta") or {}).get("is_end", True) or len(places) >= max_results:
                break

        logger.info(f"Kakao search {query!r}: {len(places)} places")
        return places[:max_results]


def _route_path(route: Dict[str, Any]) -> List[RoutePoint]:
    """Flatten section/road vertex lists ([lng, lat, lng, lat, ...]) into points."""
    path: List[RoutePoint] = []
    for section in route.get("sections") or []:
        for road in section.get("roads") or []:
            vertexes = road.get("vertexes") or []
            for i in range(0, len(vertexes) - 1, 2):
                path.append(RoutePoint(lat=vertexes[i + 1], lng=vertexes[i]))
    if path:
        path[0] = RoutePoint(lat=path[0].lat, lng=path[0].lng, distance=0, duration=0)
    return path


def _document_to_place(doc: Dict[str, Any], category: str) -> Optional[Place]:
    try:
        lat = float(doc["y"])
        lng = float(doc["x"])
    except (KeyError, TypeError, ValueError):
        logger.warning(f"Skipping Kakao document without coordinates: {doc.get('place_name')!r}")
        return None

    return Place(
        id=f"kakao-{doc.get('id')}",
        name=doc.get("place_name", ""),
        category=category,
        address=doc.get("address_name", ""),
        road_address=doc.get("road_address_name") or None,
        phone=doc.get("phone") or None,
        coordinates=Coordinate(lat=lat, lng=lng),
    )

"""
Naver backend: Naver Cloud Maps directions/geocoding and Naver local search.

Maps endpoints and the search endpoint use separate credentials.
"""
import logging
import re
from typing import Any, Dict, List, Optional, Set, Tuple

import httpx

from midway.config import Settings
from midway.errors import NoAddressFound, NoRouteFound, ProviderError, ValidationError
from midway.geo.distance import haversine_m, validate_coordinate
from midway.geo.types import Coordinate, Place, Route, RoutePoint
from midway.providers.base import (
    DirectionsProvider,
    GeocodingProvider,
    RouteOption,
    SearchProvider,
)
from midway.providers.http import build_client, get_json

logger = logging.getLogger(__name__)

MAPS_BASE_URL = "https://naveropenapi.apigw.ntruss.com"
SEARCH_URL = "https://openapi.naver.com/v1/search/local.json"

ROUTE_OPTION = {
    RouteOption.optimal: "traoptimal",
    RouteOption.fast: "trafast",
    RouteOption.comfort: "tracomfort",
}

# The local search API returns at most 5 items per call.
SEARCH_DISPLAY = 5
_TAG_RE = re.compile(r"<[^>]+>")


class NaverMapProvider(DirectionsProvider, GeocodingProvider, SearchProvider):

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not settings.naver_maps_client_id:
            logger.warning("NAVER_MAPS_CLIENT_ID not set; Naver Maps calls will fail")
        self.maps_client = build_client(
            settings,
            headers={
                "X-NCP-APIGW-API-KEY-ID": settings.naver_maps_client_id,
                "X-NCP-APIGW-API-KEY": settings.naver_maps_client_secret,
            },
            transport=transport,
        )
        self.search_client = build_client(
            settings,
            headers={
                "X-Naver-Client-Id": settings.naver_search_client_id,
                "X-Naver-Client-Secret": settings.naver_search_client_secret,
            },
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.maps_client.aclose()
        await self.search_client.aclose()

    # ---- directions ----

    async def get_route(
        self,
        start: Coordinate,
        end: Coordinate,
        option: RouteOption = RouteOption.optimal,
    ) -> Route:
        validate_coordinate(start)
        validate_coordinate(end)

        option_key = ROUTE_OPTION[option]
        data = await get_json(
            self.maps_client, f"{MAPS_BASE_URL}/map-direction/v1/driving",
            params={
                "start": f"{start.lng},{start.lat}",
                "goal": f"{end.lng},{end.lat}",
                "option": option_key,
            },
        )

        if data.get("code", 0) != 0:
            raise NoRouteFound(
                data.get("message") or "No route found",
                details={"code": data.get("code")},
            )
        routes = (data.get("route") or {}).get(option_key) or []
        if not routes:
            raise NoRouteFound("No route returned by Naver directions")

        route = routes[0]
        summary = route.get("summary") or {}
        path = [RoutePoint(lat=p[1], lng=p[0]) for p in route.get("path") or []]
        if path:
            path[0] = RoutePoint(lat=path[0].lat, lng=path[0].lng, distance=0, duration=0)

        return Route(
            start=start,
            end=end,
            distance=float(summary.get("distance", 0)),
            # Naver reports duration in milliseconds.
            duration=float(round(summary.get("duration", 0) / 1000)),
            path=path,
        )

    # ---- geocoding ----

    async def geocode_address(self, address: str) -> Coordinate:
        if not address or not address.strip():
            raise ValidationError("Address must not be empty")

        data = await get_json(
            self.maps_client, f"{MAPS_BASE_URL}/map-geocode/v2/geocode",
            params={"query": address},
        )
        if data.get("status") not in (None, "OK"):
            raise ProviderError(data.get("errorMessage") or "Geocoding failed")
        addresses = data.get("addresses") or []
        if not addresses:
            raise NoAddressFound(f"No coordinates found for {address!r}")
        coord = Coordinate(lat=float(addresses[0]["y"]), lng=float(addresses[0]["x"]))
        validate_coordinate(coord)
        return coord

    async def reverse_geocode(self, coord: Coordinate) -> str:
        validate_coordinate(coord)
        data = await get_json(
            self.maps_client, f"{MAPS_BASE_URL}/map-reversegeocode/v2/gc",
            params={
                "coords": f"{coord.lng},{coord.lat}",
                "orders": "roadaddr,addr",
                "output": "json",
            },
        )
        if (data.get("status") or {}).get("code", 0) != 0:
            raise NoAddressFound(
                (data.get("status") or {}).get("message") or "Reverse geocoding failed"
            )

        results = data.get("results") or []
        by_kind = {r.get("name"): r for r in results}
        for kind in ("roadaddr", "addr"):
            if kind in by_kind:
                formatted = _format_address(by_kind[kind])
                if formatted:
                    return formatted
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

        data = await get_json(self.search_client, SEARCH_URL, params={
            "query": query,
            "display": min(max_results, SEARCH_DISPLAY),
            "start": 1,
            "sort": "random",
        })

        places: List[Place] = []
        seen: Set[Tuple[str, str]] = set()
        for item in data.get("items") or []:
            place = _item_to_place(item, query)
            if place is None:
                continue
            key = (place.name, place.address)
            if key in seen:
                continue
            seen.add(key)
            if center is not None and radius_m:
                if haversine_m(center, place.coordinates) > radius_m:
                    continue
            places.append(place)

        logger.info(f"Naver search {query!r}: {len(places)} places")
        return places[:max_results]


def _format_address(result: Dict[str, Any]) -> str:
    """Road address when the result carries a road name, lot address otherwise."""
    region = result.get("region") or {}
    area1, area2, area3 = (
        (region.get(area) or {}).get("name", "")
        for area in ("area1", "area2", "area3")
    )
    land = result.get("land") or {}
    lot_number = land.get("number1", "")
    if land.get("number2"):
        lot_number = f"{lot_number}-{land['number2']}"

    road_name = (land.get("addition0") or {}).get("value")
    if road_name:
        building_number = (land.get("addition1") or {}).get("value") or lot_number
        parts = [area1, area2, road_name, building_number]
    else:
        parts = [area1, area2, area3, land.get("name", ""), lot_number]
    return " ".join(p for p in parts if p)


def _item_to_place(item: Dict[str, Any], category: str) -> Optional[Place]:
    try:
        mapx = int(item["mapx"])
        mapy = int(item["mapy"])
    except (KeyError, TypeError, ValueError):
        logger.warning(f"Skipping Naver item without coordinates: {item.get('title')!r}")
        return None

    return Place(
        id=f"naver-{mapx}-{mapy}",
        name=_TAG_RE.sub("", item.get("title", "")),
        category=category,
        address=item.get("address", ""),
        road_address=item.get("roadAddress") or None,
        phone=item.get("telephone") or None,
        coordinates=Coordinate(lat=mapy / 1e7, lng=mapx / 1e7),
    )

"""
Spatial candidate filter.

Coarse stage: bounding box of the route, grown by the buffer, queried against
the place store. Fine stage: minimum haversine distance from each candidate to
the unsampled route polyline.
"""
import logging
from typing import List

from midway.geo.distance import bounding_box, expand_bbox, haversine_m
from midway.geo.types import Place, Route, RoutePoint
from midway.places.store import PlaceStore

logger = logging.getLogger(__name__)

MAX_SPATIAL_CANDIDATES = 100
# A candidate this close to any vertex needs no further scanning.
CLOSE_ENOUGH_M = 10.0


def min_distance_to_path(place: Place, path: List[RoutePoint]) -> float:
    best = float("inf")
    for point in path:
        d = haversine_m(place.coordinates, point)
        if d < best:
            best = d
            if best < CLOSE_ENOUGH_M:
                break
    return best


async def filter_places_by_route(
    store: PlaceStore,
    route: Route,
    category: str,
    buffer_distance_m: float = 1000.0,
) -> List[Place]:
    """
    Places of ``category`` within ``buffer_distance_m`` of the route polyline.

    At most 100 places are returned. StorageUnavailable from the store
    propagates; an empty list is a valid result.
    """
    path = route.path or [
        RoutePoint(route.start.lat, route.start.lng),
        RoutePoint(route.end.lat, route.end.lng),
    ]
    bbox = expand_bbox(bounding_box(path), buffer_distance_m)

    in_box = await store.query_by_category_and_region(category, bbox)

    kept: List[Place] = []
    for place in in_box:
        if min_distance_to_path(place, path) <= buffer_distance_m:
            kept.append(place)
            if len(kept) >= MAX_SPATIAL_CANDIDATES:
                break

    logger.info(
        f"Spatial filter: {len(in_box)} in bounding box, "
        f"{len(kept)} within {buffer_distance_m:.0f}m of route"
    )
    return kept

"""
Great-circle distance and bounding-box helpers.

Haversine distance is the only "as the crow flies" measure used by the
pipeline. It is a lower bound on road distance and is never substituted for
provider-reported route totals.
"""
import math
from typing import Iterable, Union

from midway.errors import InvalidCoordinates
from midway.geo.types import BoundingBox, Coordinate, RoutePoint

EARTH_RADIUS_M = 6371e3
METERS_PER_DEGREE = 111000.0

LatLng = Union[Coordinate, RoutePoint]


def haversine_m(p1: LatLng, p2: LatLng) -> float:
    """Distance in meters between two points on the earth's surface."""
    phi1 = math.radians(p1.lat)
    phi2 = math.radians(p2.lat)
    dphi = math.radians(p2.lat - p1.lat)
    dlambda = math.radians(p2.lng - p1.lng)

    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def is_valid_coordinate(lat: float, lng: float) -> bool:
    if lat is None or lng is None:
        return False
    if math.isnan(lat) or math.isnan(lng):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def validate_coordinate(coord: LatLng) -> None:
    """Raise InvalidCoordinates when lat/lng are outside their ranges."""
    if not is_valid_coordinate(coord.lat, coord.lng):
        raise InvalidCoordinates(
            f"Invalid coordinates: ({coord.lat}, {coord.lng})",
            details={"lat": coord.lat, "lng": coord.lng},
        )


def bounding_box(points: Iterable[LatLng]) -> BoundingBox:
    """Axis-aligned bounding box of the given points."""
    lats = []
    lngs = []
    for p in points:
        lats.append(p.lat)
        lngs.append(p.lng)
    if not lats:
        raise ValueError("bounding_box requires at least one point")
    return BoundingBox(min(lats), max(lats), min(lngs), max(lngs))


def expand_bbox(bbox: BoundingBox, buffer_m: float, margin: float = 1.2) -> BoundingBox:
    """
    Grow a bounding box by ``buffer_m`` meters on every side.

    The buffer is converted to degrees at 111 km per degree and inflated by
    ``margin``. Longitude degrees shrink with latitude, so the longitude
    buffer is widened by 1/cos(lat) at the box's most poleward edge.
    Longitude is clamped to [-180, 180], not wrapped, so boxes crossing the
    antimeridian are cut short on one side.
    """
    lat_buffer = buffer_m / METERS_PER_DEGREE * margin
    edge_lat = max(abs(bbox.min_lat), abs(bbox.max_lat))
    cos_lat = max(math.cos(math.radians(edge_lat)), 0.01)
    lng_buffer = lat_buffer / cos_lat

    return BoundingBox(
        min_lat=max(-90.0, bbox.min_lat - lat_buffer),
        max_lat=min(90.0, bbox.max_lat + lat_buffer),
        min_lng=max(-180.0, bbox.min_lng - lng_buffer),
        max_lng=min(180.0, bbox.max_lng + lng_buffer),
    )

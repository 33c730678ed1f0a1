"""
Proximity scoring of spatial candidates against sampled route points.
"""
from dataclasses import dataclass
from typing import List

from midway.geo.distance import haversine_m
from midway.geo.types import Place, Route, RoutePoint

# Places whose nearest sample lies past this share of the route are excluded.
END_PROGRESS_CUTOFF = 0.8
FALLOFF_M = 1000.0
MIDPOINT_BONUS = 1.1


@dataclass
class ScoredPlace:
    place: Place
    proximity_score: float


def calculate_proximity_score(
    place: Place,
    sampled_points: List[RoutePoint],
    route: Route,
) -> float:
    """
    Score in [0, 100] for how close ``place`` sits to the route.

    Linear falloff from 100 on the route to 0 at 1 km, a 10% bonus for the
    middle fifth of the route, and 0 near the destination.
    """
    if not sampled_points:
        return 0.0

    nearest_index = 0
    nearest_distance = float("inf")
    for i, point in enumerate(sampled_points):
        d = haversine_m(place.coordinates, point)
        if d < nearest_distance:
            nearest_distance = d
            nearest_index = i

    if len(sampled_points) > 1:
        progress = nearest_index / (len(sampled_points) - 1)
    else:
        progress = 0.0

    if progress > END_PROGRESS_CUTOFF:
        return 0.0

    score = max(0.0, 100.0 - (nearest_distance / FALLOFF_M) * 100.0)
    if 0.4 <= progress <= 0.6:
        score *= MIDPOINT_BONUS

    return min(100.0, score)


def filter_by_proximity(
    places: List[Place],
    sampled_points: List[RoutePoint],
    route: Route,
    top_n: int = 20,
) -> List[ScoredPlace]:
    """Non-zero scored places, best first, at most ``top_n``."""
    scored = [
        ScoredPlace(place, calculate_proximity_score(place, sampled_points, route))
        for place in places
    ]
    survivors = [s for s in scored if s.proximity_score > 0]
    survivors.sort(key=lambda s: s.proximity_score, reverse=True)
    return survivors[:top_n]

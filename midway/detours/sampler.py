"""
Polyline sampling.

Reduces a dense provider polyline to points spaced roughly ``interval_m``
apart so proximity scoring stays cheap regardless of route length.
"""
from typing import List

from midway.geo.distance import haversine_m
from midway.geo.types import RoutePoint


def optimal_sample_interval(total_distance_m: float) -> float:
    """Sampling interval (m) that keeps a route to roughly 20-50 samples."""
    if total_distance_m <= 10_000:
        return 500.0
    if total_distance_m <= 50_000:
        return 1000.0
    return 2000.0


def sample_polyline(path: List[RoutePoint], interval_m: float) -> List[RoutePoint]:
    """
    Resample ``path`` at every multiple of ``interval_m`` along its length.

    The first and last input points are always kept. Interpolated points
    carry the target cumulative distance and no duration.
    """
    if len(path) <= 1:
        return list(path)
    if interval_m <= 0:
        raise ValueError("interval_m must be positive")

    sampled = [path[0]]
    accumulated = 0.0
    next_mark = interval_m

    for prev, curr in zip(path, path[1:]):
        segment = haversine_m(prev, curr)
        if segment == 0:
            continue
        accumulated += segment

        # A long segment can cross several marks.
        while accumulated >= next_mark:
            ratio = (next_mark - (accumulated - segment)) / segment
            sampled.append(RoutePoint(
                lat=prev.lat + (curr.lat - prev.lat) * ratio,
                lng=prev.lng + (curr.lng - prev.lng) * ratio,
                distance=next_mark,
            ))
            next_mark += interval_m

    last = path[-1]
    if len(sampled) > 1 and (sampled[-1].lat, sampled[-1].lng) == (last.lat, last.lng):
        sampled[-1] = last
    elif sampled[-1] is not last:
        sampled.append(last)

    return sampled

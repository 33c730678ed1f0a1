"""
Human-readable formatting for distances, durations and coordinate strings.
"""
from typing import Optional

from midway.geo.distance import is_valid_coordinate
from midway.geo.types import Coordinate


def format_distance(meters: float) -> str:
    """450 -> "450m", 1234 -> "1.2km"."""
    if abs(meters) < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.1f}km"


def format_duration(seconds: float) -> str:
    """45 -> "45 s", 125 -> "2 min 5 s", 3660 -> "1 h 1 min"."""
    total = int(round(abs(seconds)))
    sign = "-" if seconds < 0 and total else ""
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)

    if hours:
        text = f"{hours} h" + (f" {minutes} min" if minutes else "")
    elif minutes:
        text = f"{minutes} min" + (f" {secs} s" if secs else "")
    else:
        text = f"{secs} s"
    return sign + text


def format_detour_info(distance_m: float, duration_s: float) -> str:
    """Added distance and time, e.g. "+450m / +2 min"."""
    d_sign = "+" if distance_m >= 0 else ""
    t_sign = "+" if duration_s >= 0 else ""
    return f"{d_sign}{format_distance(distance_m)} / {t_sign}{format_duration(duration_s)}"


def parse_coordinates(text: str) -> Optional[Coordinate]:
    """Parse "lat,lng". None when malformed or out of range."""
    if not text:
        return None
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2:
        return None
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not is_valid_coordinate(lat, lng):
        return None
    return Coordinate(lat=lat, lng=lng)

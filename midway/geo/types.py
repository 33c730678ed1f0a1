"""
Geographic value types used throughout the detour pipeline.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class RoutePoint:
    """A polyline vertex with optional cumulative distance (m) and duration (s)."""
    lat: float
    lng: float
    distance: Optional[float] = None
    duration: Optional[float] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"lat": self.lat, "lng": self.lng}
        if self.distance is not None:
            data["distance"] = self.distance
        if self.duration is not None:
            data["duration"] = self.duration
        return data


@dataclass(frozen=True)
class Route:
    """A provider-reported driving route. Totals are in meters and seconds."""
    start: Coordinate
    end: Coordinate
    distance: float
    duration: float
    path: List[RoutePoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "distance": self.distance,
            "duration": self.duration,
            "path": [p.to_dict() for p in self.path],
        }


@dataclass(frozen=True)
class Place:
    id: str
    name: str
    category: str
    address: str
    coordinates: Coordinate
    road_address: Optional[str] = None
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "address": self.address,
            "roadAddress": self.road_address,
            "phone": self.phone,
            "coordinates": self.coordinates.to_dict(),
        }


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        return (
            self.min_lat <= lat <= self.max_lat
            and self.min_lng <= lng <= self.max_lng
        )

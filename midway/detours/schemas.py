"""
Pydantic schemas for the search and directions API.

Field names are camelCase on the wire.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from midway.providers.base import RouteOption


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LatLng(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class LocationInput(CamelModel):
    address: Optional[str] = None
    coordinates: Optional[LatLng] = None

    @model_validator(mode="after")
    def _address_or_coordinates(self):
        if self.coordinates is None and not (self.address and self.address.strip()):
            raise ValueError("either address or coordinates is required")
        return self


class SearchOptions(CamelModel):
    max_results: Optional[int] = Field(None, ge=1, le=50)
    buffer_distance: Optional[float] = Field(None, ge=100, le=10000)
    max_detour_distance: Optional[float] = Field(None, ge=500, le=50000)


class SearchRequest(CamelModel):
    start: LocationInput
    end: LocationInput
    category: str = Field(..., min_length=1)
    options: SearchOptions = SearchOptions()


class DirectionsRequest(CamelModel):
    start: LatLng
    end: LatLng
    option: RouteOption = RouteOption.optimal


class SearchData(CamelModel):
    original_route: Dict[str, Any]
    results: List[Dict[str, Any]]
    total_candidates: int
    api_calls_used: int
    duration_ms: int


class SearchResponse(CamelModel):
    success: bool = True
    data: SearchData


class DirectionsResponse(CamelModel):
    success: bool = True
    data: Dict[str, Any]


class ErrorBody(CamelModel):
    code: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(CamelModel):
    success: bool = False
    error: ErrorBody

"""
API routes for waypoint search and direct routing.
"""
import logging

from fastapi import APIRouter, Depends

from midway.dependencies import get_providers, get_search_service
from midway.detours.schemas import (
    DirectionsRequest,
    DirectionsResponse,
    ErrorResponse,
    SearchRequest,
    SearchResponse,
)
from midway.detours.service import DetourSearchService
from midway.errors import InvalidCoordinates, MidwayError, NoRouteFound
from midway.geo.types import Coordinate
from midway.providers.base import MapProviders

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["detours"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post(
    "/search",
    response_model=SearchResponse,
    response_model_by_alias=True,
    responses=ERROR_RESPONSES,
)
async def search(
    body: SearchRequest,
    service: DetourSearchService = Depends(get_search_service),
):
    """
    Recommend waypoints of a category between start and end.

    Candidates near the route are ranked by added driving distance and time
    (70%) and closeness to the route (30%).
    """
    start = (
        Coordinate(body.start.coordinates.lat, body.start.coordinates.lng)
        if body.start.coordinates else body.start.address
    )
    end = (
        Coordinate(body.end.coordinates.lat, body.end.coordinates.lng)
        if body.end.coordinates else body.end.address
    )

    result = await service.search(
        start,
        end,
        body.category,
        body.options.model_dump(exclude_none=True),
    )
    return {"success": True, "data": result.to_dict()}


@router.post(
    "/directions",
    response_model=DirectionsResponse,
    responses=ERROR_RESPONSES,
)
async def directions(
    body: DirectionsRequest,
    providers: MapProviders = Depends(get_providers),
):
    """Driving route between two coordinates."""
    try:
        route = await providers.directions.get_route(
            Coordinate(body.start.lat, body.start.lng),
            Coordinate(body.end.lat, body.end.lng),
            body.option,
        )
    except (InvalidCoordinates, NoRouteFound):
        raise
    except MidwayError as e:
        raise NoRouteFound(f"Route lookup failed: {e.message}", details={"reason": e.code}) from e

    return {"success": True, "data": route.to_dict()}

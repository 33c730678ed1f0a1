"""
API routes for populating the place store.
"""
import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from midway.db import get_db
from midway.dependencies import get_providers
from midway.places.schemas import SeedRequest, SeedResponse
from midway.places.seeding import seed_places
from midway.providers.base import MapProviders

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/places", tags=["places"])


@router.post("/seed", response_model=SeedResponse)
async def seed(
    body: SeedRequest,
    db: Session = Depends(get_db),
    providers: MapProviders = Depends(get_providers),
):
    """
    Search each category in each city with the configured provider and
    store new places. Duplicates by (name, category, address) are skipped.
    """
    started = time.monotonic()
    summary = await seed_places(
        db,
        providers.search,
        categories=body.categories,
        cities=body.cities,
        clear_existing=body.clear_existing,
    )
    return {
        "success": True,
        "data": {
            "placesCreated": summary.places_created,
            "breakdown": summary.breakdown,
            "searchFailures": summary.search_failures,
            "durationMs": int((time.monotonic() - started) * 1000),
        },
    }

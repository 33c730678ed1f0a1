"""
Pydantic schemas for the place seeding API.
"""
from typing import Dict, List

from pydantic import Field

from midway.detours.schemas import CamelModel


class SeedRequest(CamelModel):
    categories: List[str] = Field(..., min_length=1)
    cities: List[str] = Field(..., min_length=1)
    clear_existing: bool = False


class SeedData(CamelModel):
    places_created: int
    breakdown: Dict[str, int]
    search_failures: int
    duration_ms: int


class SeedResponse(CamelModel):
    success: bool = True
    data: SeedData

"""
Populate the place store from provider keyword search, one category x city at a time.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from sqlalchemy.orm import Session

from midway.geo.types import Place
from midway.places.store import delete_categories, insert_places
from midway.providers.base import SearchProvider

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_PER_SEARCH = 100


@dataclass
class SeedSummary:
    searches_run: int = 0
    search_failures: int = 0
    places_found: int = 0
    places_created: int = 0
    places_deleted: int = 0
    breakdown: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)


def _clear(db: Session, categories: List[str]) -> int:
    deleted = delete_categories(db, categories)
    db.commit()
    return deleted


def _store(db: Session, places: List[Place], category: str) -> int:
    try:
        created = insert_places(db, places, category)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return created


async def seed_places(
    db: Session,
    search: SearchProvider,
    categories: List[str],
    cities: List[str],
    clear_existing: bool = False,
    max_results: int = DEFAULT_RESULTS_PER_SEARCH,
    dry_run: bool = False,
) -> SeedSummary:
    """
    Search every category in every city and store the results.

    A failing search is recorded and skipped. Each search's inserts are
    committed on their own so one bad batch does not lose the others.
    Database writes run in a worker thread; the session is only ever used
    by one thread at a time.
    """
    summary = SeedSummary(breakdown={c: 0 for c in categories})

    if clear_existing and not dry_run:
        summary.places_deleted = await asyncio.to_thread(_clear, db, categories)
        logger.info(f"Cleared {summary.places_deleted} existing places for {categories}")

    for category in categories:
        for city in cities:
            summary.searches_run += 1
            try:
                places = await search.search_places_by_region(category, city, max_results)
            except Exception as e:
                summary.search_failures += 1
                summary.errors.append(f"{category} / {city}: {e}")
                logger.error(f"  Search failed for {category} in {city}: {e}")
                continue

            summary.places_found += len(places)
            if dry_run:
                logger.info(f"  [dry run] {category} in {city}: {len(places)} found")
                continue

            try:
                created = await asyncio.to_thread(_store, db, places, category)
            except Exception as e:
                summary.errors.append(f"{category} / {city}: insert failed: {e}")
                logger.error(f"  Insert failed for {category} in {city}: {e}")
                continue

            summary.places_created += created
            summary.breakdown[category] += created
            logger.info(f"  {category} in {city}: {len(places)} found, {created} new")

    return summary

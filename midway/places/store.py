"""
Place store: the datastore of points of interest, queried by category and region.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Set, Tuple

from sqlalchemy import delete, select, tuple_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from midway.errors import StorageUnavailable
from midway.geo.types import BoundingBox, Coordinate, Place
from midway.models import Place as PlaceRow

logger = logging.getLogger(__name__)


class PlaceStore(ABC):
    """Read access to stored places."""

    @abstractmethod
    async def query_by_category_and_region(
        self, category: str, bbox: BoundingBox
    ) -> List[Place]:
        """Places of ``category`` inside ``bbox``. Raises StorageUnavailable."""


def row_to_place(row: PlaceRow) -> Place:
    return Place(
        id=row.id,
        name=row.name,
        category=row.category,
        address=row.address or "",
        road_address=row.road_address,
        phone=row.phone,
        coordinates=Coordinate(row.lat, row.lng),
    )


class SqlPlaceStore(PlaceStore):
    """
    SQLAlchemy-backed store.

    The session is synchronous, so each query runs in a worker thread to keep
    the event loop free while the database answers.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _query(self, category: str, bbox: BoundingBox) -> List[Place]:
        db = self.session_factory()
        try:
            rows = db.execute(
                select(PlaceRow).where(
                    PlaceRow.category == category,
                    PlaceRow.lat >= bbox.min_lat,
                    PlaceRow.lat <= bbox.max_lat,
                    PlaceRow.lng >= bbox.min_lng,
                    PlaceRow.lng <= bbox.max_lng,
                )
            ).scalars().all()
            return [row_to_place(r) for r in rows]
        finally:
            db.close()

    async def query_by_category_and_region(
        self, category: str, bbox: BoundingBox
    ) -> List[Place]:
        try:
            return await asyncio.to_thread(self._query, category, bbox)
        except SQLAlchemyError as e:
            logger.error(f"Place store query failed for category={category!r}: {e}")
            raise StorageUnavailable("Failed to query places", details={"category": category}) from e


def insert_places(db: Session, places: Iterable[Place], category: str) -> int:
    """
    Insert places under ``category``, skipping duplicates.

    A place is a duplicate when (name, category, address) already exists in
    the table or earlier in the same batch. Returns the number inserted.
    The caller commits.
    """
    batch: Dict[Tuple[str, str, str], Place] = {}
    for place in places:
        key = (place.name, category, place.address or "")
        if key not in batch:
            batch[key] = place

    if not batch:
        return 0

    existing: Set[Tuple[str, str, str]] = set()
    keys = list(batch.keys())
    for i in range(0, len(keys), 500):
        chunk = keys[i:i + 500]
        rows = db.execute(
            select(PlaceRow.name, PlaceRow.category, PlaceRow.address).where(
                tuple_(PlaceRow.name, PlaceRow.category, PlaceRow.address).in_(chunk)
            )
        ).all()
        existing.update((r[0], r[1], r[2]) for r in rows)

    inserted = 0
    for key, place in batch.items():
        if key in existing:
            continue
        db.add(PlaceRow(
            name=place.name,
            category=category,
            address=place.address or "",
            road_address=place.road_address,
            phone=place.phone,
            lat=place.coordinates.lat,
            lng=place.coordinates.lng,
        ))
        inserted += 1

    db.flush()
    return inserted


def delete_categories(db: Session, categories: List[str]) -> int:
    """Remove every stored place in ``categories``. Returns rows deleted."""
    result = db.execute(delete(PlaceRow).where(PlaceRow.category.in_(categories)))
    return result.rowcount or 0

"""
SQLAlchemy ORM models.
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Text, Float, DateTime, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


class Place(Base):
    """A point of interest that can be suggested as a waypoint."""
    __tablename__ = "places"

    id = Column(String(64), primary_key=True, default=_new_id)
    name = Column(Text, nullable=False)
    category = Column(String(100), nullable=False)
    address = Column(Text, nullable=False, default="")
    road_address = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("name", "category", "address", name="uq_places_name_category_address"),
        Index("ix_places_category_lat_lng", "category", "lat", "lng"),
    )

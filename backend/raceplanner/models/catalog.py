"""
Race catalog models.

A catalog race is an admin-curated course: GPX blob reference, content
hash and the course statistics derived from the GPX at upload time.
"""

from sqlalchemy import Column, String, DateTime, Float, Integer, Boolean, ForeignKey, Text
import uuid

from raceplanner.models.base import Base, utcnow


class RaceCatalog(Base):
    """Catalog race. Written only by the ingestion saga."""

    __tablename__ = "race_catalog"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    slug = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=False)

    # Display metadata
    location_text = Column(String(255), nullable=True)
    trace_id = Column(String(36), nullable=True)
    external_site_url = Column(Text, nullable=True)
    thumbnail_url = Column(Text, nullable=True)
    is_live = Column(Boolean, default=True, nullable=False)

    # GPX blob
    gpx_storage_path = Column(String(500), nullable=True)
    gpx_sha256 = Column(String(64), nullable=True)

    # Course statistics
    distance_km = Column(Float, nullable=False, default=0)
    elevation_gain_m = Column(Float, nullable=False, default=0)
    elevation_loss_m = Column(Float, nullable=True)
    min_alt_m = Column(Float, nullable=True)
    max_alt_m = Column(Float, nullable=True)
    start_lat = Column(Float, nullable=True)
    start_lng = Column(Float, nullable=True)
    bounds_min_lat = Column(Float, nullable=True)
    bounds_min_lng = Column(Float, nullable=True)
    bounds_max_lat = Column(Float, nullable=True)
    bounds_max_lng = Column(Float, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<RaceCatalog {self.id} ({self.name})>"


class RaceCatalogAidStation(Base):
    """Aid station template of a catalog race, ordered by order_index."""

    __tablename__ = "race_catalog_aid_stations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    race_id = Column(String(36), ForeignKey("race_catalog.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    km = Column(Float, nullable=False)
    water_available = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)

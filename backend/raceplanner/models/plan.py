"""
Race plan models (subset owned by the catalog import).
"""

from sqlalchemy import Column, String, DateTime, Float, Integer, Boolean, ForeignKey, Text, JSON
import uuid

from raceplanner.models.base import Base, utcnow


class RacePlan(Base):
    """
    User-owned plan.

    Plans imported from the catalog reference their own copy of the GPX
    (plan_gpx_path) and freeze the course stats at import time.
    """

    __tablename__ = "race_plans"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    planner_values = Column(JSON, nullable=False, default=dict)

    # Catalog import
    catalog_race_id = Column(String(36), ForeignKey("race_catalog.id", ondelete="SET NULL"), nullable=True)
    catalog_race_updated_at_at_import = Column(String(64), nullable=True)
    plan_gpx_path = Column(String(500), nullable=True)
    plan_course_stats = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<RacePlan {self.id} ({self.name})>"


class PlanAidStation(Base):
    """Aid station of a plan."""

    __tablename__ = "plan_aid_stations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    plan_id = Column(String(36), ForeignKey("race_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    km = Column(Float, nullable=False)
    water_available = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)

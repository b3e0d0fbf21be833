"""Billing subscription (read-only here, used for plan quota)."""

from sqlalchemy import Column, String, DateTime

from raceplanner.models.base import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    user_id = Column(String(36), primary_key=True)
    status = Column(String(32), nullable=False)
    plan_name = Column(String(64), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)

"""Subscription model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from barbercmz.database import Base

SUBSCRIPTION_STATUSES = ("trial", "active", "suspended", "cancelled")
# Only these statuses open the dashboard and the public booking page.
ACTIVE_SUBSCRIPTION_STATUSES = ("trial", "active")


class Subscription(Base):
    """One per barbershop; tracks the plan and the billing state."""
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    barbershop_id = Column(Integer, ForeignKey("barbershops.id"), unique=True, nullable=False)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=False)
    status = Column(String, nullable=False, default="trial")
    trial_ends_at = Column(DateTime, nullable=True)
    current_period_start = Column(DateTime, nullable=True)
    current_period_end = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    barbershop = relationship("Barbershop", back_populates="subscription")
    plan = relationship("Plan")

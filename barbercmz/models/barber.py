"""Barber model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.types import JSON

from barbercmz.database import Base


class Barber(Base):
    """A chair in the shop, with its own weekly working hours."""
    __tablename__ = "barbers"

    id = Column(Integer, primary_key=True, index=True)
    barbershop_id = Column(Integer, ForeignKey("barbershops.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    # [{"dayOfWeek": 0-6 (0=Sunday), "startTime": "HH:mm", "endTime": "HH:mm",
    #   "isAvailable": bool, "lunchStart": "HH:mm"|None, "lunchEnd": "HH:mm"|None}]
    working_hours = Column(JSON, nullable=False, default=list)
    # ISO dates ("YYYY-MM-DD") the barber is off.
    unavailable_dates = Column(JSON, nullable=False, default=list)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

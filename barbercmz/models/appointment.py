"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from barbercmz.database import Base

APPOINTMENT_STATUSES = ("scheduled", "completed", "cancelled", "no_show")


class Appointment(Base):
    """Represents a booked chair time for one customer and one service."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    barbershop_id = Column(Integer, ForeignKey("barbershops.id"), nullable=False)
    barber_id = Column(Integer, ForeignKey("barbers.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default="scheduled")
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    barber = relationship("Barber")
    service = relationship("Service")
    customer = relationship("Customer")

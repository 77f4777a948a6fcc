"""Barbershop model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from barbercmz.database import Base


class Barbershop(Base):
    """A tenant. Every other record hangs off one barbershop."""
    __tablename__ = "barbershops"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    logo_url = Column(String, nullable=True)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=True)
    max_barbers = Column(Integer, nullable=False, default=1)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    users = relationship("User", back_populates="barbershop")
    subscription = relationship("Subscription", back_populates="barbershop", uselist=False)

"""Customer model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from barbercmz.database import Base


class Customer(Base):
    """Someone who booked through the public page, keyed by phone per shop."""
    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("barbershop_id", "phone", name="uq_customer_shop_phone"),
    )

    id = Column(Integer, primary_key=True, index=True)
    barbershop_id = Column(Integer, ForeignKey("barbershops.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    no_show_count = Column(Integer, nullable=False, default=0)
    blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

"""Plan model definitions."""

from sqlalchemy import Boolean, Column, Integer, Numeric, String
from sqlalchemy.types import JSON

from barbercmz.database import Base


class Plan(Base):
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    price_monthly = Column(Numeric(10, 2), nullable=False)
    max_barbers = Column(Integer, nullable=False)
    features = Column(JSON, nullable=False, default=list)
    active = Column(Boolean, nullable=False, default=True)

"""User model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from barbercmz.database import Base


class User(Base):
    """Dashboard account. Owners manage the shop; barbers work the agenda."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    barbershop_id = Column(Integer, ForeignKey("barbershops.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False)  # owner/barber
    # Bumped on logout; refresh tokens carrying an older value are rejected.
    token_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    barbershop = relationship("Barbershop", back_populates="users")

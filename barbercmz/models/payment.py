"""Payment model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String

from barbercmz.database import Base

PAYMENT_STATUSES = ("paid", "pending", "failed", "refunded")
PAYMENT_METHODS = ("pix", "card", "boleto")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String, nullable=False, default="BRL")
    status = Column(String, nullable=False, default="pending")
    payment_method = Column(String, nullable=False, default="pix")
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

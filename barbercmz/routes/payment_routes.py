import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from barbercmz.auth.dependencies import get_current_barbershop, require_owner
from barbercmz.core import config
from barbercmz.database import database_unavailable, get_db
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.payment import Payment
from barbercmz.models.user import User
from barbercmz.schemas import CamelModel, PaymentResponse
from barbercmz.subscriptions import activate_period

logger = logging.getLogger(__name__)

router = APIRouter(tags=['payments'])


class PaymentsMeResponse(CamelModel):
    payments: list[PaymentResponse]


class MockPaymentResponse(CamelModel):
    payment: PaymentResponse


def _require_subscription(barbershop: Barbershop):
    if barbershop.subscription is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='No subscription found for this barbershop.',
        )
    return barbershop.subscription


@router.get('/me', response_model=PaymentsMeResponse)
def list_my_payments(
    current_user: User = Depends(require_owner),
    barbershop: Barbershop = Depends(get_current_barbershop),
    db: Session = Depends(get_db),
):
    if barbershop.subscription is None:
        return PaymentsMeResponse(payments=[])

    try:
        payments = db.query(Payment).filter(
            Payment.subscription_id == barbershop.subscription.id,
        ).order_by(Payment.created_at.desc(), Payment.id.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return PaymentsMeResponse(payments=[PaymentResponse.model_validate(payment) for payment in payments])


@router.post('/mock', response_model=MockPaymentResponse, status_code=status.HTTP_201_CREATED)
def create_mock_payment(
    current_user: User = Depends(require_owner),
    barbershop: Barbershop = Depends(get_current_barbershop),
    db: Session = Depends(get_db),
):
    if config.is_production():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Mock payments are disabled in production.',
        )

    subscription = _require_subscription(barbershop)
    now = datetime.now()

    try:
        payment = Payment(
            subscription_id=subscription.id,
            amount=subscription.plan.price_monthly,
            currency='BRL',
            status='paid',
            payment_method='pix',
            paid_at=now,
            created_at=now,
        )
        db.add(payment)
        activate_period(subscription, now)
        db.commit()
        db.refresh(payment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info(
        'Recorded mock payment %s for barbershop %s; subscription active until %s',
        payment.id, barbershop.id, subscription.current_period_end.isoformat(),
    )
    return MockPaymentResponse(payment=PaymentResponse.model_validate(payment))

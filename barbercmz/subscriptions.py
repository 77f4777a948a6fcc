"""
Subscription lifecycle: trials, plan limits and billing periods.
"""

import logging
from datetime import datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from barbercmz.core import config
from barbercmz.models.barber import Barber
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.plan import Plan
from barbercmz.models.subscription import Subscription

logger = logging.getLogger(__name__)


def start_trial(barbershop: Barbershop, plan: Plan, now: datetime | None = None) -> Subscription:
    now = now or datetime.now()
    return Subscription(
        barbershop=barbershop,
        plan_id=plan.id,
        status="trial",
        trial_ends_at=now + timedelta(days=config.TRIAL_DAYS),
        current_period_start=now,
        current_period_end=now + timedelta(days=config.TRIAL_DAYS),
    )


def refresh_subscription_status(
    subscription: Subscription | None,
    db: Session,
    now: datetime | None = None,
) -> Subscription | None:
    """
    Suspend a subscription whose trial or paid period has run out.

    Expiry is applied lazily, on read, and persisted right away so every
    caller sees the same status.
    """
    if subscription is None:
        return None

    now = now or datetime.now()
    expired = (
        (subscription.status == "trial" and subscription.trial_ends_at is not None
         and subscription.trial_ends_at <= now)
        or (subscription.status == "active" and subscription.current_period_end is not None
            and subscription.current_period_end <= now)
    )
    if expired:
        logger.info(
            "Suspending subscription %s of barbershop %s (%s expired)",
            subscription.id, subscription.barbershop_id, subscription.status,
        )
        subscription.status = "suspended"
        db.commit()
        db.refresh(subscription)

    return subscription


def count_active_barbers(barbershop_id: int, db: Session) -> int:
    return db.query(Barber).filter(
        Barber.barbershop_id == barbershop_id,
        Barber.active.is_(True),
    ).count()


def ensure_barber_capacity(barbershop: Barbershop, db: Session) -> None:
    """Raise 403 when one more active barber would exceed the plan limit."""
    active_count = count_active_barbers(barbershop.id, db)
    if active_count >= barbershop.max_barbers:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f'Your plan allows up to {barbershop.max_barbers} active barber(s). '
                   'Upgrade the plan to add more.',
        )


def change_plan(barbershop: Barbershop, plan: Plan, db: Session) -> Subscription:
    active_count = count_active_barbers(barbershop.id, db)
    if active_count > plan.max_barbers:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'The {plan.name} plan allows {plan.max_barbers} active barber(s), '
                   f'but you have {active_count}. Deactivate barbers before downgrading.',
        )

    subscription = barbershop.subscription
    if subscription is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='No subscription found for this barbershop.',
        )

    previous_plan_id = subscription.plan_id
    subscription.plan_id = plan.id
    barbershop.plan_id = plan.id
    barbershop.max_barbers = plan.max_barbers
    db.commit()
    db.refresh(subscription)

    logger.info(
        "Barbershop %s changed plan %s -> %s", barbershop.id, previous_plan_id, plan.id,
    )
    return subscription


def activate_period(subscription: Subscription, now: datetime | None = None) -> None:
    """Start a fresh paid period; the caller commits."""
    now = now or datetime.now()
    subscription.status = "active"
    subscription.trial_ends_at = None
    subscription.current_period_start = now
    subscription.current_period_end = now + timedelta(days=config.BILLING_PERIOD_DAYS)

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from barbercmz.auth.dependencies import get_current_barbershop, require_owner
from barbercmz.database import database_unavailable, get_db
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.plan import Plan
from barbercmz.models.user import User
from barbercmz.schemas import CamelModel, SubscriptionResponse
from barbercmz.subscriptions import change_plan, refresh_subscription_status

router = APIRouter(tags=['subscriptions'])


class SubscriptionMeResponse(CamelModel):
    subscription: SubscriptionResponse | None = None


class UpdatePlanRequest(CamelModel):
    plan_id: int


def _subscription_payload(subscription) -> SubscriptionMeResponse:
    if subscription is None:
        return SubscriptionMeResponse(subscription=None)
    return SubscriptionMeResponse(subscription=SubscriptionResponse.model_validate(subscription))


@router.get('/me', response_model=SubscriptionMeResponse)
def get_my_subscription(
    barbershop: Barbershop = Depends(get_current_barbershop),
    db: Session = Depends(get_db),
):
    try:
        subscription = refresh_subscription_status(barbershop.subscription, db)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return _subscription_payload(subscription)


@router.patch('/me/plan', response_model=SubscriptionMeResponse)
def update_my_plan(
    data: UpdatePlanRequest,
    current_user: User = Depends(require_owner),
    barbershop: Barbershop = Depends(get_current_barbershop),
    db: Session = Depends(get_db),
):
    try:
        plan = db.get(Plan, data.plan_id)
        if plan is None or not plan.active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Plan not found.',
            )
        subscription = change_plan(barbershop, plan, db)
        subscription = refresh_subscription_status(subscription, db)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return _subscription_payload(subscription)

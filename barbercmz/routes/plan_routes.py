from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from barbercmz.database import database_unavailable, get_db
from barbercmz.models.plan import Plan
from barbercmz.schemas import PlanResponse

router = APIRouter(tags=['plans'])


@router.get('', response_model=list[PlanResponse])
def list_plans(db: Session = Depends(get_db)):
    try:
        plans = db.query(Plan).filter(Plan.active.is_(True)).order_by(Plan.price_monthly.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return [PlanResponse.model_validate(plan) for plan in plans]

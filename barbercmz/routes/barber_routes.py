import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from barbercmz.auth.dependencies import require_active_subscription, require_owner
from barbercmz.database import database_unavailable, get_db
from barbercmz.models.barber import Barber
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.user import User
from barbercmz.scheduling.availability import parse_hhmm
from barbercmz.schemas import BarberResponse, CamelModel, MessageResponse
from barbercmz.subscriptions import ensure_barber_capacity

logger = logging.getLogger(__name__)

router = APIRouter(tags=['barbers'])


class WorkingHoursEntry(CamelModel):
    day_of_week: int
    start_time: str
    end_time: str
    is_available: bool = True
    lunch_start: str | None = None
    lunch_end: str | None = None

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: int) -> int:
        if not 0 <= value <= 6:
            raise ValueError('dayOfWeek must be between 0 (Sunday) and 6 (Saturday).')
        return value

    @field_validator('start_time', 'end_time', 'lunch_start', 'lunch_end')
    @classmethod
    def validate_hhmm(cls, value: str | None) -> str | None:
        if value is None:
            return None
        parse_hhmm(value)
        return value

    @model_validator(mode='after')
    def validate_ranges(self) -> 'WorkingHoursEntry':
        start = parse_hhmm(self.start_time)
        end = parse_hhmm(self.end_time)
        if start >= end:
            raise ValueError('startTime must be before endTime.')

        if (self.lunch_start is None) != (self.lunch_end is None):
            raise ValueError('lunchStart and lunchEnd must be given together.')
        if self.lunch_start is not None:
            lunch_start = parse_hhmm(self.lunch_start)
            lunch_end = parse_hhmm(self.lunch_end)
            if lunch_start >= lunch_end:
                raise ValueError('lunchStart must be before lunchEnd.')
            if lunch_start < start or lunch_end > end:
                raise ValueError('Lunch break must be within working hours.')
        return self

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


def _validate_working_hours(value: list[WorkingHoursEntry] | None) -> list[WorkingHoursEntry] | None:
    if value is None:
        return None
    days = [entry.day_of_week for entry in value]
    if len(days) != len(set(days)):
        raise ValueError('workingHours cannot repeat a day of the week.')
    return sorted(value, key=lambda entry: entry.day_of_week)


def _validate_unavailable_dates(value: list[date] | None) -> list[date] | None:
    if value is None:
        return None
    return sorted(set(value))


def _validate_barber_name(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if len(normalized) < 2 or len(normalized) > 100:
        raise ValueError('Name must be between 2 and 100 characters.')
    return normalized


class CreateBarberRequest(CamelModel):
    name: str
    working_hours: list[WorkingHoursEntry] = []
    unavailable_dates: list[date] = []

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _validate_barber_name(value)

    @field_validator('working_hours')
    @classmethod
    def validate_working_hours(cls, value: list[WorkingHoursEntry]) -> list[WorkingHoursEntry]:
        return _validate_working_hours(value)

    @field_validator('unavailable_dates')
    @classmethod
    def validate_unavailable_dates(cls, value: list[date]) -> list[date]:
        return _validate_unavailable_dates(value)


class UpdateBarberRequest(CamelModel):
    name: str | None = None
    working_hours: list[WorkingHoursEntry] | None = None
    unavailable_dates: list[date] | None = None
    active: bool | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        return _validate_barber_name(value)

    @field_validator('working_hours')
    @classmethod
    def validate_working_hours(cls, value: list[WorkingHoursEntry] | None) -> list[WorkingHoursEntry] | None:
        return _validate_working_hours(value)

    @field_validator('unavailable_dates')
    @classmethod
    def validate_unavailable_dates(cls, value: list[date] | None) -> list[date] | None:
        return _validate_unavailable_dates(value)


class BarberListResponse(CamelModel):
    barbers: list[BarberResponse]
    count: int


class BarberEnvelope(CamelModel):
    message: str
    barber: BarberResponse


def get_shop_barber(barber_id: int, barbershop_id: int, db: Session) -> Barber:
    barber = db.query(Barber).filter(
        Barber.id == barber_id,
        Barber.barbershop_id == barbershop_id,
    ).first()
    if barber is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Barber not found.',
        )
    return barber


@router.get('', response_model=BarberListResponse)
def list_barbers(
    active: bool | None = Query(default=None),
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(Barber).filter(Barber.barbershop_id == barbershop.id)
        if active is not None:
            query = query.filter(Barber.active.is_(active))
        barbers = query.order_by(Barber.name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return BarberListResponse(
        barbers=[BarberResponse.model_validate(barber) for barber in barbers],
        count=len(barbers),
    )


@router.post('', response_model=BarberEnvelope, status_code=status.HTTP_201_CREATED)
def create_barber(
    data: CreateBarberRequest,
    current_user: User = Depends(require_owner),
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    try:
        ensure_barber_capacity(barbershop, db)

        barber = Barber(
            barbershop_id=barbershop.id,
            name=data.name,
            working_hours=[entry.to_record() for entry in data.working_hours],
            unavailable_dates=[day.isoformat() for day in data.unavailable_dates],
            active=True,
        )
        db.add(barber)
        db.commit()
        db.refresh(barber)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info('Barbershop %s added barber %s', barbershop.id, barber.id)
    return BarberEnvelope(message='Barber created.', barber=BarberResponse.model_validate(barber))


@router.patch('/{barber_id}', response_model=BarberEnvelope)
def update_barber(
    barber_id: int,
    data: UpdateBarberRequest,
    current_user: User = Depends(require_owner),
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    try:
        barber = get_shop_barber(barber_id, barbershop.id, db)

        if data.active is True and not barber.active:
            ensure_barber_capacity(barbershop, db)

        if data.name is not None:
            barber.name = data.name
        if data.working_hours is not None:
            barber.working_hours = [entry.to_record() for entry in data.working_hours]
        if data.unavailable_dates is not None:
            barber.unavailable_dates = [day.isoformat() for day in data.unavailable_dates]
        if data.active is not None:
            barber.active = data.active

        db.commit()
        db.refresh(barber)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return BarberEnvelope(message='Barber updated.', barber=BarberResponse.model_validate(barber))


@router.delete('/{barber_id}', response_model=MessageResponse)
def delete_barber(
    barber_id: int,
    current_user: User = Depends(require_owner),
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    try:
        barber = get_shop_barber(barber_id, barbershop.id, db)
        # Appointments keep pointing at the barber, so deactivate instead of deleting.
        barber.active = False
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info('Barbershop %s deactivated barber %s', barbershop.id, barber_id)
    return MessageResponse(message='Barber removed.')

import logging
import re
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from barbercmz.auth.dependencies import require_active_subscription
from barbercmz.core import config
from barbercmz.database import database_unavailable, ensure_database_ready, get_db
from barbercmz.models.appointment import APPOINTMENT_STATUSES, Appointment
from barbercmz.models.barber import Barber
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.customer import Customer
from barbercmz.models.service import Service
from barbercmz.routes.barbershop_routes import accepts_bookings, get_public_barbershop
from barbercmz.scheduling.booking import (
    OutsideBookingWindowError,
    SlotUnavailableError,
    book_appointment,
    shop_now,
    to_shop_time,
)
from barbercmz.schemas import AppointmentResponse, CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(tags=['appointments'])

PHONE_PATTERN = re.compile(r'^\+?[1-9]\d{1,14}$')


class CreateAppointmentRequest(CamelModel):
    barbershop_id: int
    barber_id: int
    service_id: int
    customer_name: str
    customer_phone: str
    start_time: datetime

    @field_validator('customer_name')
    @classmethod
    def validate_customer_name(cls, value: str) -> str:
        normalized = ' '.join(value.split())
        if len(normalized) < 2 or len(normalized) > 100:
            raise ValueError('Name must be between 2 and 100 characters.')
        return normalized

    @field_validator('customer_phone')
    @classmethod
    def validate_customer_phone(cls, value: str) -> str:
        normalized = re.sub(r'[\s\-()]', '', value)
        if not PHONE_PATTERN.match(normalized):
            raise ValueError('Phone must be in E.164 format (e.g. +5511999999999).')
        return normalized


class UpdateAppointmentStatusRequest(CamelModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in APPOINTMENT_STATUSES:
            raise ValueError(f'Status must be one of: {", ".join(APPOINTMENT_STATUSES)}.')
        return normalized


class AppointmentListResponse(CamelModel):
    appointments: list[AppointmentResponse]
    count: int


class AppointmentEnvelope(CamelModel):
    message: str
    appointment: AppointmentResponse


def find_or_create_customer(barbershop_id: int, name: str, phone: str, db: Session) -> Customer:
    customer = db.query(Customer).filter(
        Customer.barbershop_id == barbershop_id,
        Customer.phone == phone,
    ).first()
    if customer is not None:
        if customer.name != name and not customer.blocked:
            customer.name = name
        return customer

    customer = Customer(barbershop_id=barbershop_id, name=name, phone=phone)
    db.add(customer)
    try:
        db.flush()
    except IntegrityError:
        # Another request created the same phone first.
        db.rollback()
        customer = db.query(Customer).filter(
            Customer.barbershop_id == barbershop_id,
            Customer.phone == phone,
        ).one()
    return customer


def record_no_show(customer: Customer) -> None:
    customer.no_show_count = (customer.no_show_count or 0) + 1
    threshold = config.NO_SHOW_BLOCK_THRESHOLD
    if threshold > 0 and customer.no_show_count >= threshold and not customer.blocked:
        customer.blocked = True
        logger.info(
            'Customer %s blocked automatically after %s no-shows',
            customer.id, customer.no_show_count,
        )


@router.post('', response_model=AppointmentEnvelope, status_code=status.HTTP_201_CREATED)
def create_appointment(data: CreateAppointmentRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        barbershop = get_public_barbershop(data.barbershop_id, db)
        if not accepts_bookings(barbershop, db):
            raise HTTPException(
                status_code=status.HTTP_402_PAYMENT_REQUIRED,
                detail='This barbershop is not accepting online bookings right now.',
            )

        barber = db.query(Barber).filter(
            Barber.id == data.barber_id,
            Barber.barbershop_id == barbershop.id,
            Barber.active.is_(True),
        ).first()
        if barber is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Barber not found.',
            )

        service = db.query(Service).filter(
            Service.id == data.service_id,
            Service.barbershop_id == barbershop.id,
            Service.active.is_(True),
        ).first()
        if service is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Service not found.',
            )

        customer = find_or_create_customer(barbershop.id, data.customer_name, data.customer_phone, db)
        if customer.blocked:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='This customer cannot book online. Please contact the barbershop.',
            )

        try:
            appointment = book_appointment(
                db,
                barbershop,
                barber,
                service,
                customer,
                to_shop_time(data.start_time),
                shop_now(),
            )
        except OutsideBookingWindowError as exc:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except SlotUnavailableError as exc:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return AppointmentEnvelope(
        message='Appointment booked.',
        appointment=AppointmentResponse.model_validate(appointment),
    )


@router.get('', response_model=AppointmentListResponse)
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    barber_id: int | None = Query(default=None, alias='barberId'),
    customer_id: int | None = Query(default=None, alias='customerId'),
    start_date: datetime | None = Query(default=None, alias='startDate'),
    end_date: datetime | None = Query(default=None, alias='endDate'),
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    if status_filter is not None and status_filter not in APPOINTMENT_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'status must be one of: {", ".join(APPOINTMENT_STATUSES)}.',
        )

    ensure_database_ready()

    try:
        query = db.query(Appointment).options(
            joinedload(Appointment.barber),
            joinedload(Appointment.service),
            joinedload(Appointment.customer),
        ).filter(Appointment.barbershop_id == barbershop.id)

        if status_filter is not None:
            query = query.filter(Appointment.status == status_filter)
        if barber_id is not None:
            query = query.filter(Appointment.barber_id == barber_id)
        if customer_id is not None:
            query = query.filter(Appointment.customer_id == customer_id)
        if start_date is not None:
            query = query.filter(Appointment.start_time >= to_shop_time(start_date))
        if end_date is not None:
            query = query.filter(Appointment.start_time <= to_shop_time(end_date))

        appointments = query.order_by(Appointment.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(appointment) for appointment in appointments],
        count=len(appointments),
    )


@router.patch('/{appointment_id}/status', response_model=AppointmentEnvelope)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    try:
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.barbershop_id == barbershop.id,
        ).first()
        if appointment is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Appointment not found.',
            )

        if appointment.status != 'scheduled':
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f'Appointment is already {appointment.status} and can no longer change.',
            )
        if data.status == 'scheduled':
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Appointment is already scheduled.',
            )

        appointment.status = data.status
        if data.status == 'no_show':
            record_no_show(appointment.customer)

        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info('Appointment %s marked %s', appointment.id, appointment.status)
    return AppointmentEnvelope(
        message='Appointment updated.',
        appointment=AppointmentResponse.model_validate(appointment),
    )

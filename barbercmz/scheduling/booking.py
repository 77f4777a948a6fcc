import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from barbercmz.core import config
from barbercmz.models.appointment import Appointment
from barbercmz.models.barber import Barber
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.customer import Customer
from barbercmz.models.service import Service
from barbercmz.scheduling.availability import (
    OCCUPYING_STATUSES,
    generate_slots,
    is_slot_available,
    overlaps,
)

logger = logging.getLogger(__name__)


class SlotUnavailableError(Exception):
    """The requested start cannot be booked for this barber."""


class OutsideBookingWindowError(Exception):
    """The requested start is in the past or too far ahead."""


def to_shop_time(value: datetime) -> datetime:
    """Convert an aware datetime to naive shop wall-clock time; naive values pass through."""
    if value.tzinfo is None:
        return value.replace(second=0, microsecond=0)
    local = value.astimezone(ZoneInfo(config.TIMEZONE))
    return local.replace(tzinfo=None, second=0, microsecond=0)


def shop_now() -> datetime:
    return datetime.now(ZoneInfo(config.TIMEZONE)).replace(tzinfo=None)


def booking_window_end(now: datetime) -> datetime:
    return datetime.combine(now.date() + timedelta(days=config.BOOKING_WINDOW_DAYS), time.max)


def busy_intervals(
    db: Session,
    barber_id: int,
    on_date: date,
    exclude_id: int | None = None,
) -> list[tuple[datetime, datetime]]:
    day_start = datetime.combine(on_date, time.min)
    day_end = day_start + timedelta(days=1)

    query = db.query(Appointment.start_time, Appointment.end_time).filter(
        Appointment.barber_id == barber_id,
        Appointment.status.in_(OCCUPYING_STATUSES),
        Appointment.start_time < day_end,
        Appointment.end_time > day_start,
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)

    return [(start, end) for start, end in query.all()]


def available_slots(
    db: Session,
    service: Service,
    barbers: list[Barber],
    on_date: date,
    now: datetime,
) -> list[dict]:
    """
    Free start times for ``service`` on ``on_date`` across ``barbers``.

    Each entry carries every barber free at that start, so a customer who
    does not care who cuts can pick any of them.
    """
    if on_date < now.date() or datetime.combine(on_date, time.min) > booking_window_end(now):
        return []

    duration = timedelta(minutes=service.duration)
    by_start: dict[datetime, list[int]] = {}

    for barber in barbers:
        starts = generate_slots(
            barber.working_hours,
            barber.unavailable_dates,
            on_date,
            service.duration,
            busy=busy_intervals(db, barber.id, on_date),
            now=now,
        )
        for start in starts:
            by_start.setdefault(start, []).append(barber.id)

    return [
        {'start_time': start, 'end_time': start + duration, 'barber_ids': sorted(barber_ids)}
        for start, barber_ids in sorted(by_start.items())
    ]


def book_appointment(
    db: Session,
    barbershop: Barbershop,
    barber: Barber,
    service: Service,
    customer: Customer,
    start: datetime,
    now: datetime,
) -> Appointment:
    """
    Insert a scheduled appointment after re-checking the slot.

    The barber row is locked first so two concurrent bookings for the same
    barber serialize on databases that support ``FOR UPDATE``. The overlap
    check runs again after the insert is flushed, which covers SQLite.
    """
    if start <= now:
        raise OutsideBookingWindowError('Appointments must be scheduled in the future.')
    if start > booking_window_end(now):
        raise OutsideBookingWindowError(
            f'Appointments can only be booked up to {config.BOOKING_WINDOW_DAYS} days ahead.'
        )

    db.query(Barber).filter(Barber.id == barber.id).with_for_update().one()

    end = start + timedelta(minutes=service.duration)
    busy = busy_intervals(db, barber.id, start.date())

    if not is_slot_available(
        barber.working_hours,
        barber.unavailable_dates,
        start,
        service.duration,
        busy=busy,
        now=now,
    ):
        if any(overlaps(start, end, busy_start, busy_end) for busy_start, busy_end in busy):
            raise SlotUnavailableError('This time is already booked.')
        raise SlotUnavailableError('This time is not available for the selected barber.')

    appointment = Appointment(
        barbershop_id=barbershop.id,
        barber_id=barber.id,
        service_id=service.id,
        customer_id=customer.id,
        start_time=start,
        end_time=end,
        status='scheduled',
    )
    db.add(appointment)
    db.flush()

    # SQLite ignores FOR UPDATE; the insert holds the write lock, so a booking
    # committed since the first check is visible here.
    clashes = busy_intervals(db, barber.id, start.date(), exclude_id=appointment.id)
    if any(overlaps(start, end, busy_start, busy_end) for busy_start, busy_end in clashes):
        db.rollback()
        logger.warning(
            "Concurrent booking rejected: barber=%s start=%s", barber.id, start.isoformat(),
        )
        raise SlotUnavailableError('This time is already booked.')

    db.commit()
    db.refresh(appointment)

    logger.info(
        "Booked appointment %s: barbershop=%s barber=%s service=%s start=%s",
        appointment.id, barbershop.id, barber.id, service.id, start.isoformat(),
    )
    return appointment

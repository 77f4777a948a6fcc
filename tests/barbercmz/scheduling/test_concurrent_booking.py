import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from conftest import FULL_WEEK_HOURS, at, upcoming_day

from barbercmz.database import Base
from barbercmz.models.appointment import Appointment
from barbercmz.models.barber import Barber
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.customer import Customer
from barbercmz.models.service import Service
from barbercmz.scheduling import booking


@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_engine(
        f'sqlite:///{tmp_path / "booking.db"}',
        connect_args={'check_same_thread': False, 'timeout': 15},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


def _seed(session_factory) -> dict:
    session = session_factory()
    try:
        barbershop = Barbershop(name='Navalha', slug='navalha', max_barbers=3)
        session.add(barbershop)
        session.flush()
        barber = Barber(
            barbershop_id=barbershop.id,
            name='Joao',
            working_hours=FULL_WEEK_HOURS,
            unavailable_dates=[],
        )
        service = Service(barbershop_id=barbershop.id, name='Corte', duration=30, price=45)
        first = Customer(barbershop_id=barbershop.id, name='Carlos', phone='+5511999990000')
        second = Customer(barbershop_id=barbershop.id, name='Ana', phone='+5511988887777')
        session.add_all([barber, service, first, second])
        session.commit()
        return {
            'barbershop': barbershop.id,
            'barber': barber.id,
            'service': service.id,
            'customers': [first.id, second.id],
        }
    finally:
        session.close()


def test_concurrent_bookings_for_same_slot_yield_one_appointment(
    file_session_factory,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    ids = _seed(file_session_factory)
    start = at(upcoming_day(), 10, 0)

    # Hold both requests after their first availability read.
    barrier = threading.Barrier(2, timeout=15)
    state = threading.local()
    original_busy_intervals = booking.busy_intervals

    def busy_intervals_then_wait(*args, **kwargs):
        result = original_busy_intervals(*args, **kwargs)
        if not getattr(state, 'waited', False):
            state.waited = True
            barrier.wait()
        return result

    monkeypatch.setattr(booking, 'busy_intervals', busy_intervals_then_wait)

    def book(customer_id: int) -> str:
        session = file_session_factory()
        try:
            try:
                booking.book_appointment(
                    session,
                    session.get(Barbershop, ids['barbershop']),
                    session.get(Barber, ids['barber']),
                    session.get(Service, ids['service']),
                    session.get(Customer, customer_id),
                    start,
                    datetime.now(),
                )
            except booking.SlotUnavailableError:
                return 'conflict'
            return 'booked'
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=2) as executor:
        outcomes = sorted(executor.map(book, ids['customers']))

    assert outcomes == ['booked', 'conflict']

    session = file_session_factory()
    try:
        scheduled = session.query(Appointment).filter(
            Appointment.barber_id == ids['barber'],
            Appointment.status == 'scheduled',
        ).count()
    finally:
        session.close()
    assert scheduled == 1

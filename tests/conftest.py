import os
from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('JWT_SECRET_KEY', 'barbercmz-test-signing-key-0123456789')

from barbercmz.auth.passwords import hash_password  # noqa: E402
from barbercmz.database import Base  # noqa: E402
from barbercmz.models import (  # noqa: E402,F401
    appointment,
    barber,
    barbershop,
    customer,
    payment,
    plan,
    service,
    subscription,
    user,
)
from barbercmz.models.barber import Barber  # noqa: E402
from barbercmz.models.barbershop import Barbershop  # noqa: E402
from barbercmz.models.plan import Plan  # noqa: E402
from barbercmz.models.service import Service  # noqa: E402
from barbercmz.models.subscription import Subscription  # noqa: E402
from barbercmz.models.user import User  # noqa: E402

OWNER_PASSWORD = 'secret123'

FULL_WEEK_HOURS = [
    {
        'dayOfWeek': day,
        'startTime': '09:00',
        'endTime': '18:00',
        'isAvailable': True,
        'lunchStart': '12:00',
        'lunchEnd': '13:00',
    }
    for day in range(7)
]


def upcoming_day(days_ahead: int = 7) -> date:
    return date.today() + timedelta(days=days_ahead)


def at(on_date: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(on_date, datetime.min.time()).replace(hour=hour, minute=minute)


@pytest.fixture
def db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def plans(db):
    solo = Plan(name='Solo', price_monthly=39.90, max_barbers=1, features=['1 barber'], active=True)
    team = Plan(name='Equipe', price_monthly=79.90, max_barbers=3, features=['Up to 3 barbers'], active=True)
    db.add_all([solo, team])
    db.commit()
    return {'solo': solo, 'team': team}


@pytest.fixture
def shop(db, plans):
    """A barbershop on the team plan with a running trial, one owner, one barber and one service."""
    now = datetime.now()
    team = plans['team']
    barbershop_row = Barbershop(name='Navalha', slug='navalha', plan_id=team.id, max_barbers=team.max_barbers)
    owner = User(
        barbershop=barbershop_row,
        name='Owner',
        email='owner@navalha.com',
        hashed_password=hash_password(OWNER_PASSWORD),
        role='owner',
    )
    staff = User(
        barbershop=barbershop_row,
        name='Staff',
        email='staff@navalha.com',
        hashed_password=hash_password(OWNER_PASSWORD),
        role='barber',
    )
    trial = Subscription(
        barbershop=barbershop_row,
        plan_id=team.id,
        status='trial',
        trial_ends_at=now + timedelta(days=10),
        current_period_start=now,
        current_period_end=now + timedelta(days=10),
    )
    barber_row = Barber(name='Joao', working_hours=FULL_WEEK_HOURS, unavailable_dates=[])
    db.add_all([barbershop_row, owner, staff, trial])
    db.flush()
    barber_row.barbershop_id = barbershop_row.id
    haircut = Service(barbershop_id=barbershop_row.id, name='Corte', duration=30, price=45, active=True)
    db.add_all([barber_row, haircut])
    db.commit()

    return {
        'barbershop': barbershop_row,
        'owner': owner,
        'staff': staff,
        'subscription': trial,
        'barber': barber_row,
        'service': haircut,
        'plans': plans,
    }


@pytest.fixture
def client(db, monkeypatch):
    from fastapi.testclient import TestClient

    from barbercmz.core import config
    from barbercmz.database import get_db
    from barbercmz.main import app

    monkeypatch.setattr(config, 'COOKIE_SECURE', False)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def bearer(user) -> dict:
    from barbercmz.auth.jwt_handler import create_access_token

    return {'Authorization': f'Bearer {create_access_token(user)}'}

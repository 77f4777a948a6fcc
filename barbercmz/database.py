import logging
from threading import Lock

from fastapi import HTTPException, status
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from barbercmz.core import config

logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(config.DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'

_schema_lock = Lock()
_appointment_schema_checked = False
_customer_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def database_unavailable(exc: SQLAlchemyError) -> HTTPException:
    logger.error("Database operation failed: %s", exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_barber_range '
                     'ON appointments(barber_id, start_time, end_time)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_shop_start '
                     'ON appointments(barbershop_id, start_time)')
            )

        _appointment_schema_checked = True


def ensure_customer_schema() -> None:
    global _customer_schema_checked

    if _customer_schema_checked:
        return

    with _schema_lock:
        if _customer_schema_checked:
            return

        inspector = inspect(engine)

        if 'customers' not in inspector.get_table_names():
            _customer_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_customers_shop_name ON customers(barbershop_id, name)')
            )

        _customer_schema_checked = True


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
        ensure_customer_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from barbercmz.core import config
from barbercmz.database import Base, engine, ensure_appointment_schema, ensure_customer_schema
from barbercmz.models import (  # noqa: F401
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
from barbercmz.routes import (
    appointment_routes,
    auth_routes,
    barber_routes,
    barbershop_routes,
    customer_routes,
    payment_routes,
    plan_routes,
    service_routes,
    subscription_routes,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

config.validate_runtime_config()

app = FastAPI(title='BarberCMZ API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
        ensure_customer_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'BarberCMZ API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(barbershop_routes.router, prefix='/barbershops')
app.include_router(barber_routes.router, prefix='/barbers')
app.include_router(service_routes.router, prefix='/services')
app.include_router(customer_routes.router, prefix='/customers')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(plan_routes.router, prefix='/plans')
app.include_router(subscription_routes.router, prefix='/subscriptions')
app.include_router(payment_routes.router, prefix='/payments')

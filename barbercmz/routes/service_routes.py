from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from barbercmz.auth.dependencies import require_active_subscription, require_owner
from barbercmz.database import database_unavailable, get_db
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.service import Service
from barbercmz.models.user import User
from barbercmz.schemas import CamelModel, MessageResponse, ServiceResponse

router = APIRouter(tags=['services'])

MAX_SERVICE_DURATION_MINUTES = 8 * 60


def _check_name(value: str) -> str:
    normalized = value.strip()
    if len(normalized) < 2 or len(normalized) > 100:
        raise ValueError('Name must be between 2 and 100 characters.')
    return normalized


def _check_duration(value: int) -> int:
    if value < 1 or value > MAX_SERVICE_DURATION_MINUTES:
        raise ValueError(f'Duration must be between 1 and {MAX_SERVICE_DURATION_MINUTES} minutes.')
    return value


def _check_price(value: float) -> float:
    if value < 0:
        raise ValueError('Price cannot be negative.')
    return round(value, 2)


class CreateServiceRequest(CamelModel):
    name: str
    duration: int
    price: float

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_name(value)

    @field_validator('duration')
    @classmethod
    def validate_duration(cls, value: int) -> int:
        return _check_duration(value)

    @field_validator('price')
    @classmethod
    def validate_price(cls, value: float) -> float:
        return _check_price(value)


class UpdateServiceRequest(CamelModel):
    name: str | None = None
    duration: int | None = None
    price: float | None = None
    active: bool | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        return None if value is None else _check_name(value)

    @field_validator('duration')
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        return None if value is None else _check_duration(value)

    @field_validator('price')
    @classmethod
    def validate_price(cls, value: float | None) -> float | None:
        return None if value is None else _check_price(value)


class ServiceListResponse(CamelModel):
    services: list[ServiceResponse]
    count: int


class ServiceEnvelope(CamelModel):
    message: str
    service: ServiceResponse


def get_shop_service(service_id: int, barbershop_id: int, db: Session) -> Service:
    service = db.query(Service).filter(
        Service.id == service_id,
        Service.barbershop_id == barbershop_id,
    ).first()
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Service not found.',
        )
    return service


@router.get('', response_model=ServiceListResponse)
def list_services(
    active: bool | None = Query(default=None),
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(Service).filter(Service.barbershop_id == barbershop.id)
        if active is not None:
            query = query.filter(Service.active.is_(active))
        services = query.order_by(Service.name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return ServiceListResponse(
        services=[ServiceResponse.model_validate(service) for service in services],
        count=len(services),
    )


@router.post('', response_model=ServiceEnvelope, status_code=status.HTTP_201_CREATED)
def create_service(
    data: CreateServiceRequest,
    current_user: User = Depends(require_owner),
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    try:
        service = Service(
            barbershop_id=barbershop.id,
            name=data.name,
            duration=data.duration,
            price=data.price,
            active=True,
        )
        db.add(service)
        db.commit()
        db.refresh(service)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return ServiceEnvelope(message='Service created.', service=ServiceResponse.model_validate(service))


@router.patch('/{service_id}', response_model=ServiceEnvelope)
def update_service(
    service_id: int,
    data: UpdateServiceRequest,
    current_user: User = Depends(require_owner),
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    try:
        service = get_shop_service(service_id, barbershop.id, db)
        for field_name in ('name', 'duration', 'price', 'active'):
            value = getattr(data, field_name)
            if value is not None:
                setattr(service, field_name, value)
        db.commit()
        db.refresh(service)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return ServiceEnvelope(message='Service updated.', service=ServiceResponse.model_validate(service))


@router.delete('/{service_id}', response_model=MessageResponse)
def delete_service(
    service_id: int,
    current_user: User = Depends(require_owner),
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    try:
        service = get_shop_service(service_id, barbershop.id, db)
        service.active = False
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return MessageResponse(message='Service removed.')

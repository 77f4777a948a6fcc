import logging
import re
import unicodedata
from datetime import date

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from pydantic import field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from barbercmz.auth.dependencies import get_current_user, require_owner
from barbercmz.auth.passwords import hash_password
from barbercmz.core import config
from barbercmz.database import database_unavailable, ensure_database_ready, get_db
from barbercmz.models.barber import Barber
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.plan import Plan
from barbercmz.models.service import Service
from barbercmz.models.subscription import ACTIVE_SUBSCRIPTION_STATUSES
from barbercmz.models.user import User
from barbercmz.scheduling.booking import available_slots, shop_now
from barbercmz.schemas import BarbershopResponse, CamelModel, PublicBarberResponse, ServiceResponse
from barbercmz.storage import logo_storage
from barbercmz.subscriptions import refresh_subscription_status, start_trial

logger = logging.getLogger(__name__)

router = APIRouter(tags=['barbershops'])

SLUG_PATTERN = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
MAX_SLUG_LENGTH = 60


def slug_from_name(name: str) -> str:
    """'Barbearia do Zé' -> 'barbearia-do-ze'."""
    decomposed = unicodedata.normalize('NFD', name.lower())
    without_accents = ''.join(char for char in decomposed if unicodedata.category(char) != 'Mn')
    return re.sub(r'[^a-z0-9]+', '-', without_accents).strip('-')[:MAX_SLUG_LENGTH].strip('-')


def _validate_slug(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if not normalized:
        return None
    if len(normalized) < 3 or len(normalized) > MAX_SLUG_LENGTH or not SLUG_PATTERN.match(normalized):
        raise ValueError('Slug must be 3-60 lowercase letters, numbers or dashes.')
    return normalized


def _validate_name(value: str) -> str:
    normalized = value.strip()
    if len(normalized) < 2 or len(normalized) > 100:
        raise ValueError('Name must be between 2 and 100 characters.')
    return normalized


class CreateBarbershopRequest(CamelModel):
    name: str
    slug: str | None = None
    plan_id: int
    owner_name: str
    owner_email: str
    owner_password: str

    @field_validator('name', 'owner_name')
    @classmethod
    def normalize_names(cls, value: str) -> str:
        return _validate_name(value)

    @field_validator('slug')
    @classmethod
    def normalize_slug(cls, value: str | None) -> str | None:
        return _validate_slug(value)

    @field_validator('owner_email')
    @classmethod
    def normalize_owner_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not re.match(r'^[^@\s]+@[^@\s]+\.[^@\s]+$', normalized):
            raise ValueError('Invalid email.')
        return normalized

    @field_validator('owner_password')
    @classmethod
    def validate_owner_password(cls, value: str) -> str:
        if len(value) < 6 or len(value) > 72:
            raise ValueError('Password must be between 6 and 72 characters.')
        return value


class UpdateBarbershopRequest(CamelModel):
    name: str | None = None
    slug: str | None = None

    @field_validator('name')
    @classmethod
    def normalize_name(cls, value: str | None) -> str | None:
        return None if value is None else _validate_name(value)

    @field_validator('slug')
    @classmethod
    def normalize_slug(cls, value: str | None) -> str | None:
        return _validate_slug(value)


class BarbershopEnvelope(CamelModel):
    message: str
    barbershop: BarbershopResponse


class PublicServicesResponse(CamelModel):
    services: list[ServiceResponse]
    count: int


class PublicBarbersResponse(CamelModel):
    barbers: list[PublicBarberResponse]
    count: int


class AvailableSlot(CamelModel):
    start_time: str
    end_time: str
    barber_ids: list[int]


class AvailableSlotsResponse(CamelModel):
    date: date
    service_id: int
    duration: int
    slots: list[AvailableSlot]


def get_public_barbershop(barbershop_id: int, db: Session) -> Barbershop:
    barbershop = db.get(Barbershop, barbershop_id)
    if barbershop is None or not barbershop.active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Barbershop not found.',
        )
    return barbershop


def accepts_bookings(barbershop: Barbershop, db: Session) -> bool:
    subscription = refresh_subscription_status(barbershop.subscription, db)
    return subscription is not None and subscription.status in ACTIVE_SUBSCRIPTION_STATUSES


def _slug_taken(slug: str, db: Session, exclude_id: int | None = None) -> bool:
    query = db.query(Barbershop.id).filter(Barbershop.slug == slug)
    if exclude_id is not None:
        query = query.filter(Barbershop.id != exclude_id)
    return query.first() is not None


def _slug_conflict() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail='This slug is already in use. Choose another one.',
    )


@router.post('', response_model=BarbershopEnvelope, status_code=status.HTTP_201_CREATED)
def create_barbershop(data: CreateBarbershopRequest, db: Session = Depends(get_db)):
    slug = data.slug or slug_from_name(data.name)
    if len(slug) < 3:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail='Could not derive a slug from the name. Provide one explicitly.',
        )

    try:
        plan = db.get(Plan, data.plan_id)
        if plan is None or not plan.active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Plan not found.',
            )

        if _slug_taken(slug, db):
            raise _slug_conflict()

        if db.query(User.id).filter(User.email == data.owner_email).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This email is already registered.',
            )

        barbershop = Barbershop(
            name=data.name,
            slug=slug,
            plan_id=plan.id,
            max_barbers=plan.max_barbers,
            active=True,
        )
        owner = User(
            barbershop=barbershop,
            name=data.owner_name,
            email=data.owner_email,
            hashed_password=hash_password(data.owner_password),
            role='owner',
        )
        subscription = start_trial(barbershop, plan)
        db.add_all([barbershop, owner, subscription])
        db.commit()
        db.refresh(barbershop)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='Slug or email already in use.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info('Created barbershop %s (%s) on plan %s', barbershop.id, barbershop.slug, plan.id)
    return BarbershopEnvelope(
        message='Barbershop created.',
        barbershop=BarbershopResponse.model_validate(barbershop),
    )


@router.get('/slug/{slug}', response_model=BarbershopResponse)
def get_barbershop_by_slug(slug: str, db: Session = Depends(get_db)):
    try:
        barbershop = db.query(Barbershop).filter(
            Barbershop.slug == slug.strip().lower(),
            Barbershop.active.is_(True),
        ).first()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    if barbershop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Barbershop not found.',
        )
    return BarbershopResponse.model_validate(barbershop)


@router.get('/{barbershop_id}', response_model=BarbershopResponse)
def get_barbershop(
    barbershop_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if current_user.barbershop_id != barbershop_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='You can only view your own barbershop.',
        )

    barbershop = db.get(Barbershop, barbershop_id)
    if barbershop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Barbershop not found.',
        )
    return BarbershopResponse.model_validate(barbershop)


@router.patch('/{barbershop_id}', response_model=BarbershopEnvelope)
def update_barbershop(
    barbershop_id: int,
    data: UpdateBarbershopRequest,
    current_user: User = Depends(require_owner),
    db: Session = Depends(get_db),
):
    if current_user.barbershop_id != barbershop_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='You can only edit your own barbershop.',
        )

    try:
        barbershop = db.get(Barbershop, barbershop_id)
        if data.slug is not None and data.slug != barbershop.slug:
            if _slug_taken(data.slug, db, exclude_id=barbershop.id):
                raise _slug_conflict()
            barbershop.slug = data.slug
        if data.name is not None:
            barbershop.name = data.name

        db.commit()
        db.refresh(barbershop)
    except IntegrityError as exc:
        db.rollback()
        raise _slug_conflict() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return BarbershopEnvelope(
        message='Barbershop updated.',
        barbershop=BarbershopResponse.model_validate(barbershop),
    )


@router.post('/{barbershop_id}/logo', response_model=BarbershopEnvelope)
def upload_barbershop_logo(
    barbershop_id: int,
    logo: UploadFile = File(...),
    current_user: User = Depends(require_owner),
    db: Session = Depends(get_db),
):
    if current_user.barbershop_id != barbershop_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='You can only edit your own barbershop.',
        )

    if logo.content_type not in logo_storage.ALLOWED_LOGO_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Logo must be a PNG, JPEG, WebP or GIF image.',
        )

    content = logo.file.read(config.LOGO_MAX_BYTES + 1)
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Logo file is empty.',
        )
    if len(content) > config.LOGO_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Logo must be at most {config.LOGO_MAX_BYTES // 1024} KB.',
        )

    try:
        webp = logo_storage.to_webp(content)
    except logo_storage.InvalidLogoError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Logo file is not a readable image.',
        ) from exc

    try:
        logo_url = logo_storage.upload_logo(barbershop_id, webp)
    except logo_storage.LogoStorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Image service unavailable. Try again later.',
        ) from exc

    try:
        barbershop = db.get(Barbershop, barbershop_id)
        barbershop.logo_url = logo_url
        db.commit()
        db.refresh(barbershop)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return BarbershopEnvelope(
        message='Logo updated.',
        barbershop=BarbershopResponse.model_validate(barbershop),
    )


@router.get('/{barbershop_id}/services', response_model=PublicServicesResponse)
def list_public_services(barbershop_id: int, db: Session = Depends(get_db)):
    try:
        get_public_barbershop(barbershop_id, db)
        services = db.query(Service).filter(
            Service.barbershop_id == barbershop_id,
            Service.active.is_(True),
        ).order_by(Service.name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return PublicServicesResponse(
        services=[ServiceResponse.model_validate(service) for service in services],
        count=len(services),
    )


@router.get('/{barbershop_id}/barbers', response_model=PublicBarbersResponse)
def list_public_barbers(barbershop_id: int, db: Session = Depends(get_db)):
    try:
        get_public_barbershop(barbershop_id, db)
        barbers = db.query(Barber).filter(
            Barber.barbershop_id == barbershop_id,
            Barber.active.is_(True),
        ).order_by(Barber.name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return PublicBarbersResponse(
        barbers=[PublicBarberResponse.model_validate(barber) for barber in barbers],
        count=len(barbers),
    )


@router.get('/{barbershop_id}/available-slots', response_model=AvailableSlotsResponse)
def list_available_slots(
    barbershop_id: int,
    date: date = Query(...),
    service_id: int = Query(..., alias='serviceId'),
    barber_id: int | None = Query(default=None, alias='barberId'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        barbershop = get_public_barbershop(barbershop_id, db)

        service = db.query(Service).filter(
            Service.id == service_id,
            Service.barbershop_id == barbershop.id,
            Service.active.is_(True),
        ).first()
        if service is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Service not found.',
            )

        barber_query = db.query(Barber).filter(
            Barber.barbershop_id == barbershop.id,
            Barber.active.is_(True),
        )
        if barber_id is not None:
            barber_query = barber_query.filter(Barber.id == barber_id)
        barbers = barber_query.order_by(Barber.id.asc()).all()
        if barber_id is not None and not barbers:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Barber not found.',
            )

        slots = []
        if accepts_bookings(barbershop, db):
            slots = available_slots(db, service, barbers, date, shop_now())
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return AvailableSlotsResponse(
        date=date,
        service_id=service.id,
        duration=service.duration,
        slots=[
            AvailableSlot(
                start_time=slot['start_time'].isoformat(),
                end_time=slot['end_time'].isoformat(),
                barber_ids=slot['barber_ids'],
            )
            for slot in slots
        ],
    )

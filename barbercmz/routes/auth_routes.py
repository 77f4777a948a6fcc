import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from barbercmz.auth import jwt_handler
from barbercmz.auth.dependencies import get_current_user
from barbercmz.auth.passwords import verify_password
from barbercmz.core import config
from barbercmz.database import database_unavailable, get_db
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.user import User
from barbercmz.schemas import CamelModel, MessageResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=['auth'])

REFRESH_COOKIE_PATH = '/auth'


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if '@' not in normalized:
            raise ValueError('Invalid email.')
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError('Password must be at least 6 characters.')
        return value


class AuthResponse(CamelModel):
    access_token: str
    user: UserResponse


class RefreshResponse(CamelModel):
    access_token: str


def set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.REFRESH_COOKIE_NAME,
        value=token,
        max_age=config.REFRESH_TOKEN_EXPIRES_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=config.COOKIE_SECURE,
        samesite='none' if config.COOKIE_SECURE else 'lax',
        path=REFRESH_COOKIE_PATH,
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(key=config.REFRESH_COOKIE_NAME, path=REFRESH_COOKIE_PATH)


def _invalid_session() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail='Session expired. Please log in again.',
    )


def _user_from_refresh_token(token: str | None, db: Session) -> User:
    if not token:
        raise _invalid_session()

    try:
        payload = jwt_handler.decode_token(token, expected_type=jwt_handler.REFRESH_TOKEN_TYPE)
    except Exception as exc:
        raise _invalid_session() from exc

    user_id = payload.get('sub')
    user = db.get(User, int(user_id)) if str(user_id).isdigit() else None
    if user is None or payload.get('ver') != (user.token_version or 0):
        raise _invalid_session()
    return user


@router.post('/login', response_model=AuthResponse)
def login(data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.email == data.email).first()
        if user is None or not verify_password(data.password, user.hashed_password):
            logger.warning('Rejected login for %s', data.email)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail='Invalid email or password.',
            )

        barbershop = db.get(Barbershop, user.barbershop_id)
        if barbershop is None or not barbershop.active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='This barbershop is inactive.',
            )
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    set_refresh_cookie(response, jwt_handler.create_refresh_token(user))
    return AuthResponse(
        access_token=jwt_handler.create_access_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post('/refresh', response_model=RefreshResponse)
def refresh(request: Request, response: Response, db: Session = Depends(get_db)):
    try:
        user = _user_from_refresh_token(request.cookies.get(config.REFRESH_COOKIE_NAME), db)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    # Rotate the cookie so an active session never hits the refresh expiry.
    set_refresh_cookie(response, jwt_handler.create_refresh_token(user))
    return RefreshResponse(access_token=jwt_handler.create_access_token(user))


@router.post('/logout', response_model=MessageResponse)
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    token = request.cookies.get(config.REFRESH_COOKIE_NAME)
    try:
        user = _user_from_refresh_token(token, db)
        user.token_version = (user.token_version or 0) + 1
        db.commit()
    except HTTPException:
        # Missing or stale cookie: nothing to revoke.
        pass
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Could not revoke refresh tokens on logout')

    clear_refresh_cookie(response)
    return MessageResponse(message='Logged out.')


@router.get('/me', response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)

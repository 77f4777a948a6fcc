from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from barbercmz.auth import jwt_handler
from barbercmz.database import get_db
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.subscription import ACTIVE_SUBSCRIPTION_STATUSES
from barbercmz.models.user import User
from barbercmz.subscriptions import refresh_subscription_status

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        payload = jwt_handler.decode_token(credentials.credentials)
    except Exception as exc:
        raise _unauthorized("Invalid or expired token") from exc

    user_id = payload.get("sub")
    if not user_id or not str(user_id).isdigit():
        raise _unauthorized("Invalid token subject")

    user = db.get(User, int(user_id))
    if user is None:
        raise _unauthorized("User not found")
    return user


def require_owner(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "owner":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the barbershop owner can do this.",
        )
    return current_user


def get_current_barbershop(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Barbershop:
    barbershop = db.get(Barbershop, current_user.barbershop_id)
    if barbershop is None or not barbershop.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Barbershop is inactive.",
        )
    return barbershop


def require_active_subscription(
    barbershop: Barbershop = Depends(get_current_barbershop),
    db: Session = Depends(get_db),
) -> Barbershop:
    subscription = refresh_subscription_status(barbershop.subscription, db)
    if subscription is None or subscription.status not in ACTIVE_SUBSCRIPTION_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="Subscription expired. Renew your plan to keep using the dashboard.",
        )
    return barbershop

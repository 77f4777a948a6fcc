import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from barbercmz.auth.dependencies import require_active_subscription, require_owner
from barbercmz.database import database_unavailable, ensure_database_ready, get_db
from barbercmz.models.barbershop import Barbershop
from barbercmz.models.customer import Customer
from barbercmz.models.user import User
from barbercmz.schemas import CamelModel, CustomerResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=['customers'])


class BlockCustomerRequest(CamelModel):
    blocked: bool


class CustomerListResponse(CamelModel):
    customers: list[CustomerResponse]
    count: int


class CustomerEnvelope(CamelModel):
    message: str
    customer: CustomerResponse


@router.get('', response_model=CustomerListResponse)
def list_customers(
    blocked: bool | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Customer).filter(Customer.barbershop_id == barbershop.id)
        if blocked is not None:
            query = query.filter(Customer.blocked.is_(blocked))
        if search and search.strip():
            pattern = f'%{search.strip()}%'
            query = query.filter(or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern)))
        customers = query.order_by(Customer.name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return CustomerListResponse(
        customers=[CustomerResponse.model_validate(customer) for customer in customers],
        count=len(customers),
    )


@router.patch('/{customer_id}/block', response_model=CustomerEnvelope)
def block_customer(
    customer_id: int,
    data: BlockCustomerRequest,
    current_user: User = Depends(require_owner),
    barbershop: Barbershop = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    try:
        customer = db.query(Customer).filter(
            Customer.id == customer_id,
            Customer.barbershop_id == barbershop.id,
        ).first()
        if customer is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Customer not found.',
            )

        customer.blocked = data.blocked
        db.commit()
        db.refresh(customer)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    logger.info(
        'Barbershop %s %s customer %s',
        barbershop.id, 'blocked' if data.blocked else 'unblocked', customer.id,
    )
    return CustomerEnvelope(
        message='Customer blocked.' if data.blocked else 'Customer unblocked.',
        customer=CustomerResponse.model_validate(customer),
    )

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from barbercmz.routes.service_routes import (
    CreateServiceRequest,
    UpdateServiceRequest,
    create_service,
    delete_service,
    list_services,
    update_service,
)


@pytest.mark.parametrize(
    'payload',
    [
        {'name': 'X', 'duration': 30, 'price': 10},
        {'name': 'Barba', 'duration': 0, 'price': 10},
        {'name': 'Barba', 'duration': 481, 'price': 10},
        {'name': 'Barba', 'duration': 30, 'price': -1},
    ],
)
def test_create_service_request_rejects_invalid_values(payload: dict) -> None:
    with pytest.raises(ValidationError):
        CreateServiceRequest(**payload)


def test_create_service_rounds_price(db, shop) -> None:
    response = create_service(
        data=CreateServiceRequest(name=' Barba ', duration=20, price=29.999),
        current_user=shop['owner'],
        barbershop=shop['barbershop'],
        db=db,
    )

    assert response.service.name == 'Barba'
    assert response.service.price == pytest.approx(30.0)
    assert response.service.active is True


def test_update_service_changes_only_given_fields(db, shop) -> None:
    response = update_service(
        service_id=shop['service'].id,
        data=UpdateServiceRequest(duration=45),
        current_user=shop['owner'],
        barbershop=shop['barbershop'],
        db=db,
    )

    assert response.service.duration == 45
    assert response.service.name == 'Corte'


def test_delete_service_deactivates_it(db, shop) -> None:
    response = delete_service(
        service_id=shop['service'].id,
        current_user=shop['owner'],
        barbershop=shop['barbershop'],
        db=db,
    )

    assert response.message == 'Service removed.'
    assert list_services(active=True, barbershop=shop['barbershop'], db=db).count == 0
    assert list_services(active=False, barbershop=shop['barbershop'], db=db).count == 1


def test_update_service_rejects_unknown_service(db, shop) -> None:
    with pytest.raises(HTTPException) as exception_info:
        update_service(
            service_id=9999,
            data=UpdateServiceRequest(price=10),
            current_user=shop['owner'],
            barbershop=shop['barbershop'],
            db=db,
        )

    assert exception_info.value.status_code == 404

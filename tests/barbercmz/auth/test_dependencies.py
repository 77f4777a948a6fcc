from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from conftest import bearer

from barbercmz.auth.dependencies import get_current_barbershop, require_owner


def test_require_owner_rejects_barber_role(shop) -> None:
    with pytest.raises(HTTPException) as exception_info:
        require_owner(current_user=shop['staff'])

    assert exception_info.value.status_code == 403


def test_require_owner_accepts_owner(shop) -> None:
    assert require_owner(current_user=shop['owner']) is shop['owner']


def test_get_current_barbershop_rejects_inactive_shop(db, shop) -> None:
    shop['barbershop'].active = False
    db.commit()

    with pytest.raises(HTTPException) as exception_info:
        get_current_barbershop(current_user=shop['staff'], db=db)

    assert exception_info.value.status_code == 403


def test_barber_can_read_dashboard_lists(client, shop) -> None:
    response = client.get('/barbers', headers=bearer(shop['staff']))

    assert response.status_code == 200
    assert response.json()['count'] == 1


@pytest.mark.parametrize(
    ('method', 'path', 'body'),
    [
        ('post', '/barbers', {'name': 'Pedro'}),
        ('post', '/services', {'name': 'Barba', 'duration': 20, 'price': 30}),
        ('patch', '/subscriptions/me/plan', {'planId': 1}),
        ('post', '/payments/mock', None),
    ],
)
def test_barber_cannot_call_owner_routes(client, shop, method: str, path: str, body) -> None:
    response = client.request(method.upper(), path, json=body, headers=bearer(shop['staff']))

    assert response.status_code == 403
    assert response.json()['detail'] == 'Only the barbershop owner can do this.'


def test_barber_cannot_remove_barbers_or_block_customers(client, shop) -> None:
    headers = bearer(shop['staff'])

    removed = client.delete(f"/barbers/{shop['barber'].id}", headers=headers)
    blocked = client.patch('/customers/1/block', json={'blocked': True}, headers=headers)

    assert removed.status_code == 403
    assert blocked.status_code == 403
    assert shop['barber'].active is True


def test_owner_can_create_barber_over_http(client, shop) -> None:
    response = client.post(
        '/barbers',
        json={'name': 'Pedro', 'workingHours': [{'dayOfWeek': 1, 'startTime': '09:00', 'endTime': '18:00'}]},
        headers=bearer(shop['owner']),
    )

    assert response.status_code == 201
    assert response.json()['barber']['workingHours'][0]['dayOfWeek'] == 1


def test_dashboard_requires_token(client, shop) -> None:
    response = client.get('/barbers')

    assert response.status_code == 401
    assert response.headers['www-authenticate'] == 'Bearer'


def test_dashboard_returns_402_after_trial_ends(client, db, shop) -> None:
    shop['subscription'].trial_ends_at = datetime.now() - timedelta(days=1)
    db.commit()

    response = client.get('/services', headers=bearer(shop['owner']))

    assert response.status_code == 402

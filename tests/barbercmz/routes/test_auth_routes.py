from conftest import OWNER_PASSWORD

from barbercmz.auth import jwt_handler
from barbercmz.core import config


def _login(client, email='owner@navalha.com', password=OWNER_PASSWORD):
    return client.post('/auth/login', json={'email': email, 'password': password})


def test_login_returns_access_token_and_sets_refresh_cookie(client, shop) -> None:
    response = _login(client, email='  OWNER@navalha.com ')

    assert response.status_code == 200
    body = response.json()
    assert body['user']['email'] == 'owner@navalha.com'
    assert body['user']['barbershopId'] == shop['barbershop'].id

    claims = jwt_handler.decode_token(body['accessToken'])
    assert claims['role'] == 'owner'
    assert claims['barbershopId'] == shop['barbershop'].id

    set_cookie = response.headers['set-cookie']
    assert set_cookie.startswith(f'{config.REFRESH_COOKIE_NAME}=')
    assert 'HttpOnly' in set_cookie
    assert 'Path=/auth' in set_cookie


def test_login_rejects_wrong_password(client, shop) -> None:
    response = _login(client, password='wrong-password')

    assert response.status_code == 401
    assert response.json()['detail'] == 'Invalid email or password.'


def test_login_rejects_inactive_barbershop(client, shop, db) -> None:
    shop['barbershop'].active = False
    db.commit()

    response = _login(client)

    assert response.status_code == 403


def test_me_requires_bearer_token(client, shop) -> None:
    assert client.get('/auth/me').status_code == 401

    token = _login(client).json()['accessToken']
    response = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 200
    assert response.json()['role'] == 'owner'


def test_me_rejects_refresh_token_as_bearer(client, shop) -> None:
    token = jwt_handler.create_refresh_token(shop['owner'])

    response = client.get('/auth/me', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 401


def test_refresh_issues_new_access_token_from_cookie(client, shop) -> None:
    _login(client)

    response = client.post('/auth/refresh')

    assert response.status_code == 200
    claims = jwt_handler.decode_token(response.json()['accessToken'])
    assert claims['sub'] == str(shop['owner'].id)


def test_refresh_without_cookie_is_unauthorized(client, shop) -> None:
    assert client.post('/auth/refresh').status_code == 401


def test_logout_revokes_outstanding_refresh_tokens(client, shop) -> None:
    _login(client)
    stale_cookie = client.cookies.get(config.REFRESH_COOKIE_NAME)

    logout = client.post('/auth/logout')
    assert logout.status_code == 200
    assert logout.json()['message'] == 'Logged out.'
    assert shop['owner'].token_version == 1

    response = client.post(
        '/auth/refresh',
        headers={'Cookie': f'{config.REFRESH_COOKIE_NAME}={stale_cookie}'},
    )

    assert response.status_code == 401


def test_logout_without_session_still_succeeds(client, shop) -> None:
    response = client.post('/auth/logout')

    assert response.status_code == 200
    assert shop['owner'].token_version in (0, None)

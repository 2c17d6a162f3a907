import datetime

import jwt

from conftest import auth_headers


def test_register_login_and_profile(client, register):
    user_id, headers = register('Someone@Example.com', 'Someone')
    resp = client.get('/api/user', headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['user']['id'] == user_id
    assert resp.get_json()['user']['email'] == 'someone@example.com'


def test_duplicate_email_conflicts(client, register):
    register('a@example.com')
    resp = client.post('/api/auth/register', json={'email': 'a@example.com', 'password': 'x'})
    assert resp.status_code == 409


def test_wrong_password(client, register):
    register('a@example.com')
    resp = client.post('/api/auth/login', json={'email': 'a@example.com', 'password': 'nope'})
    assert resp.status_code == 401


def test_missing_or_malformed_token(client):
    assert client.get('/api/connection').status_code == 401
    assert client.get('/api/connection', headers={'Authorization': 'Token abc'}).status_code == 401
    assert client.get('/api/connection', headers=auth_headers('not-a-jwt')).status_code == 401


def test_expired_token(app, client, register):
    user_id, _ = register('a@example.com')
    token = jwt.encode(
        {'user_id': user_id,
         'exp': datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(seconds=5)},
        app.config['JWT_SECRET'], algorithm='HS256'
    )
    resp = client.get('/api/connection', headers=auth_headers(token))
    assert resp.status_code == 401
    assert resp.get_json()['code'] == 'UNAUTHENTICATED'

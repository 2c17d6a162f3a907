"""Shared fixtures: in-memory app, registered users, webhook recorder."""
from datetime import datetime, timezone

import pytest

from app import create_app
from extensions import db

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'JWT_SECRET': 'test-jwt-secret',
    'JWT_EXP_DELTA_SECONDS': 3600,
    'CRON_SECRET': 'test-cron-secret',
    'REMINDER_TIMEZONE': 'Asia/Seoul',
    'REMINDER_HOUR': 9,
    'SCHEDULER_ENABLED': False,
}

# 2026-05-10 09:30 KST
TRIGGER_NOW = datetime(2026, 5, 10, 0, 30, tzinfo=timezone.utc)


@pytest.fixture
def app():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def auth_headers(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def register(client):
    """Register and log in a user; returns (user_id, headers)."""

    def _register(email, name=None, password='pw-1234'):
        resp = client.post('/api/auth/register', json={'email': email, 'password': password, 'name': name})
        assert resp.status_code == 201, resp.get_json()
        user_id = resp.get_json()['user']['id']

        resp = client.post('/api/auth/login', json={'email': email, 'password': password})
        assert resp.status_code == 200
        return user_id, auth_headers(resp.get_json()['token'])

    return _register


@pytest.fixture
def link(client):
    """Send a request from one user and accept it as the other."""

    def _link(from_headers, to_id, to_headers):
        resp = client.post('/api/connection', json={'toUserId': to_id}, headers=from_headers)
        assert resp.status_code == 200, resp.get_json()
        request_id = resp.get_json()['requestId']
        resp = client.post(f'/api/connection/requests/{request_id}', json={'action': 'approve'},
                           headers=to_headers)
        assert resp.status_code == 200, resp.get_json()
        return request_id

    return _link


@pytest.fixture
def webhook_calls(monkeypatch):
    """Replace the outbound webhook with a recorder. Set `fail` to URLs that should fail."""
    calls = []
    failing = set()

    def fake_send(url, content):
        calls.append((url, content))
        return url not in failing

    monkeypatch.setattr('utils.reminders.send_discord_webhook', fake_send)
    fake_send.calls = calls
    fake_send.failing = failing
    return fake_send

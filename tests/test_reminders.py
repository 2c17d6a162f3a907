from datetime import datetime, timezone, timedelta
from unittest.mock import MagicMock

import pytest
import requests

from conftest import TRIGGER_NOW
from extensions import db
from models import TravelSchedule, WeddingPrep
from utils import reminders
from utils.discord import post_webhook, send_discord_webhook
from utils.errors import UpstreamError

# TRIGGER_NOW 是 5/10 09:30 KST
DUE_TOMORROW = '2026-05-11T15:00:00+09:00'
DUE_TODAY = '2026-05-10T20:00:00+09:00'
DUE_LATER = '2026-05-12T08:00:00+09:00'
DAY_OF_NOW = datetime(2026, 5, 11, 0, 10, tzinfo=timezone.utc)  # 5/11 09:10 KST
OFF_HOUR_NOW = datetime(2026, 5, 10, 2, 0, tzinfo=timezone.utc)  # 5/10 11:00 KST


def sweep(app, now):
    with app.app_context():
        return reminders.run_reminder_sweep(now=now)


def markers(app, model, record_id):
    with app.app_context():
        record = db.session.get(model, record_id)
        return record.day_before_reminded_at, record.day_of_reminded_at


def set_webhook(client, headers, url):
    resp = client.put('/api/user/webhook', json={'discordWebhookUrl': url}, headers=headers)
    assert resp.status_code == 200


def create_schedule(client, headers, **fields):
    body = {'title': 'Flight to Jeju', 'dueDate': DUE_TOMORROW}
    body.update(fields)
    resp = client.post('/api/travel-schedule', json=body, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()['id']


class TestSweep:

    def test_day_before_then_day_of_fire_once_each(self, app, client, register, webhook_calls):
        _, headers = register('a@example.com')
        set_webhook(client, headers, 'https://hooks.example.com/a')
        schedule_id = create_schedule(client, headers, note='Gate 3')

        first = sweep(app, TRIGGER_NOW)
        second = sweep(app, TRIGGER_NOW + timedelta(minutes=20))
        assert first['sent'] == 1 and first['tomorrow'] == 1
        assert second['sent'] == 0
        assert len(webhook_calls.calls) == 1
        url, content = webhook_calls.calls[0]
        assert url == 'https://hooks.example.com/a'
        assert '(내일)' in content and 'Flight to Jeju' in content and 'Gate 3' in content
        assert '2026-05-11 15:00' in content

        day_before, day_of = markers(app, TravelSchedule, schedule_id)
        assert day_before is not None and day_of is None

        third = sweep(app, DAY_OF_NOW)
        fourth = sweep(app, DAY_OF_NOW)
        assert third['today'] == 1 and fourth['sent'] == 0
        assert len(webhook_calls.calls) == 2
        assert '(오늘)' in webhook_calls.calls[1][1]
        assert all(markers(app, TravelSchedule, schedule_id))

    def test_marking_does_not_touch_updated_at(self, app, client, register, webhook_calls):
        _, headers = register('a@example.com')
        set_webhook(client, headers, 'https://hooks.example.com/a')
        create_schedule(client, headers)

        etag = client.get('/api/travel-schedule', headers=headers).headers['ETag']
        sweep(app, TRIGGER_NOW)
        resp = client.get('/api/travel-schedule', headers={**headers, 'If-None-Match': etag})
        assert resp.status_code == 304

    def test_outside_trigger_hour_is_a_noop(self, app, client, register, webhook_calls):
        _, headers = register('a@example.com')
        set_webhook(client, headers, 'https://hooks.example.com/a')
        schedule_id = create_schedule(client, headers)

        result = sweep(app, OFF_HOUR_NOW)
        assert result['skipped'] is True
        assert result['sent'] == 0
        assert webhook_calls.calls == []
        assert markers(app, TravelSchedule, schedule_id) == (None, None)

    def test_ineligible_records_are_ignored(self, app, client, register, webhook_calls):
        _, headers = register('a@example.com')
        set_webhook(client, headers, 'https://hooks.example.com/a')
        create_schedule(client, headers, remindEnabled=False)
        create_schedule(client, headers, dueDate=DUE_LATER)
        create_schedule(client, headers, dueDate=None)
        deleted_id = create_schedule(client, headers)
        client.delete(f'/api/travel-schedule/{deleted_id}', headers=headers)

        assert sweep(app, TRIGGER_NOW)['sent'] == 0
        assert webhook_calls.calls == []

    def test_due_today_fires_day_of_window(self, app, client, register, webhook_calls):
        _, headers = register('a@example.com')
        set_webhook(client, headers, 'https://hooks.example.com/a')
        schedule_id = create_schedule(client, headers, dueDate=DUE_TODAY)

        assert sweep(app, TRIGGER_NOW)['today'] == 1
        day_before, day_of = markers(app, TravelSchedule, schedule_id)
        assert day_before is None and day_of is not None

    def test_no_endpoint_leaves_window_open(self, app, client, register, webhook_calls):
        _, headers = register('a@example.com')
        resp = client.post('/api/wedding-prep', json={
            'category': 'hall', 'content': 'Final payment', 'dueDate': DUE_TOMORROW, 'remindEnabled': True,
        }, headers=headers)
        item_id = resp.get_json()['id']

        assert sweep(app, TRIGGER_NOW)['sent'] == 0
        assert markers(app, WeddingPrep, item_id) == (None, None)

        set_webhook(client, headers, 'https://hooks.example.com/a')
        assert sweep(app, TRIGGER_NOW)['sent'] == 1
        day_before, _ = markers(app, WeddingPrep, item_id)
        assert day_before is not None
        assert 'Final payment' in webhook_calls.calls[0][1]

    def test_fan_out_to_partner_tolerates_one_failure(self, app, client, register, link, webhook_calls):
        _, a_headers = register('a@example.com')
        b_id, b_headers = register('b@example.com')
        link(a_headers, b_id, b_headers)
        set_webhook(client, a_headers, 'https://hooks.example.com/a')
        set_webhook(client, b_headers, 'https://hooks.example.com/b')
        webhook_calls.failing.add('https://hooks.example.com/a')

        schedule_id = create_schedule(client, a_headers)
        assert sweep(app, TRIGGER_NOW)['sent'] == 1
        assert sorted(url for url, _ in webhook_calls.calls) == [
            'https://hooks.example.com/a', 'https://hooks.example.com/b'
        ]
        assert markers(app, TravelSchedule, schedule_id)[0] is not None

    def test_all_targets_failing_keeps_window_open(self, app, client, register, webhook_calls):
        _, headers = register('a@example.com')
        set_webhook(client, headers, 'https://hooks.example.com/a')
        webhook_calls.failing.add('https://hooks.example.com/a')
        schedule_id = create_schedule(client, headers)

        assert sweep(app, TRIGGER_NOW)['sent'] == 0
        assert markers(app, TravelSchedule, schedule_id) == (None, None)

    def test_one_failing_record_does_not_abort_siblings(self, app, client, register, webhook_calls,
                                                       monkeypatch):
        _, headers = register('a@example.com')
        set_webhook(client, headers, 'https://hooks.example.com/a')
        broken_id = create_schedule(client, headers, title='broken')
        ok_id = create_schedule(client, headers, title='ok')

        real_dispatch = reminders.dispatch_to_viewers

        def dispatch(record, message):
            if record.id == broken_id:
                raise RuntimeError('boom')
            return real_dispatch(record, message)

        monkeypatch.setattr(reminders, 'dispatch_to_viewers', dispatch)

        result = sweep(app, TRIGGER_NOW)
        assert result['sent'] == 1
        assert result['failed'] == 1
        assert markers(app, TravelSchedule, ok_id)[0] is not None
        assert markers(app, TravelSchedule, broken_id) == (None, None)


class TestManualSend:

    def test_manual_send_ignores_and_keeps_markers(self, app, client, register, webhook_calls):
        a_id, headers = register('a@example.com')
        set_webhook(client, headers, 'https://hooks.example.com/a')
        schedule_id = create_schedule(client, headers)

        with app.app_context():
            assert reminders.send_reminders_now(a_id, now=TRIGGER_NOW) == 1
        with app.app_context():
            assert reminders.send_reminders_now(a_id, now=TRIGGER_NOW) == 1
        assert markers(app, TravelSchedule, schedule_id) == (None, None)

        assert sweep(app, TRIGGER_NOW)['sent'] == 1
        with app.app_context():
            assert reminders.send_reminders_now(a_id, now=TRIGGER_NOW) == 1
        assert len(webhook_calls.calls) == 4
        assert markers(app, TravelSchedule, schedule_id)[0] is not None

    def test_manual_send_covers_partner_records(self, app, client, register, link, webhook_calls):
        a_id, a_headers = register('a@example.com')
        b_id, b_headers = register('b@example.com')
        link(a_headers, b_id, b_headers)
        set_webhook(client, a_headers, 'https://hooks.example.com/a')
        create_schedule(client, b_headers, dueDate=DUE_TODAY)
        create_schedule(client, b_headers, dueDate=DUE_LATER)

        with app.app_context():
            assert reminders.send_reminders_now(a_id, now=TRIGGER_NOW) == 1
        assert '(오늘)' in webhook_calls.calls[0][1]

    def test_manual_endpoint(self, client, register, webhook_calls):
        _, headers = register('a@example.com')
        set_webhook(client, headers, 'https://hooks.example.com/a')
        soon = (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat()
        create_schedule(client, headers, dueDate=soon)

        resp = client.post('/api/notifications/send-reminders', headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()['sent'] == 1

        assert client.post('/api/notifications/send-reminders').status_code == 401


class TestCronEndpoint:

    def test_requires_shared_secret(self, client):
        assert client.get('/api/notifications/send-reminders').status_code == 401
        resp = client.get('/api/notifications/send-reminders', headers={'Authorization': 'Bearer wrong'})
        assert resp.status_code == 401

    def test_accepts_bearer_or_header_secret(self, client, webhook_calls):
        for headers in ({'Authorization': 'Bearer test-cron-secret'}, {'X-Cron-Secret': 'test-cron-secret'}):
            resp = client.get('/api/notifications/send-reminders', headers=headers)
            assert resp.status_code == 200
            assert resp.get_json()['sent'] == 0

    def test_non_ascii_secret_is_rejected(self, client):
        resp = client.get('/api/notifications/send-reminders', headers={'X-Cron-Secret': 'caf\xe9'})
        assert resp.status_code == 401
        resp = client.get('/api/notifications/send-reminders', headers={'Authorization': 'Bearer caf\xe9'})
        assert resp.status_code == 401

    def test_rejects_when_secret_not_configured(self, app, client):
        app.config['CRON_SECRET'] = None
        resp = client.get('/api/notifications/send-reminders', headers={'X-Cron-Secret': 'anything'})
        assert resp.status_code == 403


class TestWebhook:

    def test_2xx_is_success(self, app, monkeypatch):
        post = MagicMock(return_value=MagicMock(status_code=204))
        monkeypatch.setattr('utils.discord.requests.post', post)
        with app.app_context():
            assert post_webhook('https://hooks.example.com/a', 'hi') is True
        post.assert_called_once_with('https://hooks.example.com/a', json={'content': 'hi'}, timeout=10)

    def test_non_2xx_raises_upstream(self, app, monkeypatch):
        monkeypatch.setattr('utils.discord.requests.post', MagicMock(return_value=MagicMock(status_code=500)))
        with app.app_context():
            with pytest.raises(UpstreamError):
                post_webhook('https://hooks.example.com/a', 'hi')
            assert send_discord_webhook('https://hooks.example.com/a', 'hi') is False

    def test_network_error_is_not_fatal(self, app, monkeypatch):
        monkeypatch.setattr('utils.discord.requests.post',
                            MagicMock(side_effect=requests.ConnectionError('down')))
        with app.app_context():
            assert send_discord_webhook('https://hooks.example.com/a', 'hi') is False

    def test_invalid_webhook_url_is_rejected(self, client, register):
        _, headers = register('a@example.com')
        resp = client.put('/api/user/webhook', json={'discordWebhookUrl': 'not a url'}, headers=headers)
        assert resp.status_code == 400

"""Notification centre tests: per-user visibility, read state, preferences, admin sends."""

import pytest

from app.models import Notification


@pytest.fixture
def inbox(db_session, customer, other_customer):
    rows = [
        Notification(user_id=customer.id, type='IN_APP', title='Order placed', message='RA-2026-000001'),
        Notification(user_id=customer.id, type='IN_APP', title='Order shipped', message='On its way'),
        Notification(user_id=other_customer.id, type='IN_APP', title='Welcome', message='Hello Bilal'),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return rows


class TestNotificationCentre:

    def test_lists_only_own(self, client, customer_headers, inbox):
        resp = client.get('/api/notifications', headers=customer_headers)

        assert resp.status_code == 200
        assert resp.json['count'] == 2
        assert resp.json['unreadCount'] == 2
        assert {n['title'] for n in resp.json['data']} == {'Order placed', 'Order shipped'}

    def test_mark_read(self, client, customer_headers, inbox):
        resp = client.put(f'/api/notifications/{inbox[0].id}/read', headers=customer_headers)

        assert resp.json['data']['isRead'] is True
        assert resp.json['data']['readAt'] is not None
        unread = client.get('/api/notifications?unreadOnly=true', headers=customer_headers).json
        assert unread['count'] == 1
        assert unread['unreadCount'] == 1

    def test_mark_all_read(self, client, customer_headers, other_headers, inbox):
        resp = client.put('/api/notifications/read-all', headers=customer_headers)

        assert resp.json['data']['updated'] == 2
        assert client.get('/api/notifications', headers=other_headers).json['unreadCount'] == 1

    def test_cannot_touch_others(self, client, other_headers, admin_headers, inbox):
        assert client.put(f'/api/notifications/{inbox[0].id}/read', headers=other_headers).status_code == 403
        assert client.delete(f'/api/notifications/{inbox[0].id}', headers=admin_headers).status_code == 403

    def test_delete(self, client, db_session, customer_headers, inbox):
        resp = client.delete(f'/api/notifications/{inbox[1].id}', headers=customer_headers)

        assert resp.status_code == 200
        assert db_session.query(Notification).count() == 2

    def test_unknown_notification(self, client, customer_headers):
        assert client.put('/api/notifications/999/read', headers=customer_headers).status_code == 404


class TestPreferences:

    def test_defaults_created_on_read(self, client, customer_headers):
        data = client.get('/api/notifications/preferences', headers=customer_headers).json['data']

        assert data['emailNotifications'] is True
        assert data['currency'] == 'PKR'

    def test_update(self, client, customer_headers):
        resp = client.put('/api/notifications/preferences', json={
            'promotions': False, 'language': 'ur', 'currency': 'usd',
        }, headers=customer_headers)

        data = resp.json['data']
        assert (data['promotions'], data['orderUpdates']) == (False, True)
        assert (data['language'], data['currency']) == ('ur', 'USD')


class TestAdminSend:

    def test_send_to_user(self, client, customer, customer_headers, admin_headers):
        resp = client.post('/api/notifications', json={
            'userId': customer.id, 'type': 'IN_APP', 'title': 'Restock', 'message': 'Geode coasters are back',
        }, headers=admin_headers)

        assert resp.status_code == 201
        assert client.get('/api/notifications', headers=customer_headers).json['data'][0]['title'] == 'Restock'

    def test_send_requires_fields(self, client, customer, admin_headers):
        resp = client.post('/api/notifications', json={'userId': customer.id}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "User ID, type, title, and message are required"

    def test_customer_cannot_send(self, client, customer, customer_headers):
        resp = client.post('/api/notifications', json={
            'userId': customer.id, 'type': 'IN_APP', 'title': 'x', 'message': 'y',
        }, headers=customer_headers)
        assert resp.status_code == 403

    def test_bulk_to_all_skips_blocked(self, client, db_session, customer, other_customer, admin, make_user, admin_headers):
        make_user(email='blocked@example.com', status='BLOCKED')

        resp = client.post('/api/notifications/bulk', json={
            'type': 'IN_APP', 'title': 'Eid sale', 'message': '20% off coasters', 'sendToAll': True,
        }, headers=admin_headers)

        assert resp.status_code == 201
        assert resp.json['data']['count'] == 3
        assert db_session.query(Notification).filter_by(title='Eid sale').count() == 3

    def test_bulk_ignores_unknown_ids(self, client, customer, admin_headers):
        resp = client.post('/api/notifications/bulk', json={
            'type': 'IN_APP', 'title': 'Hi', 'message': 'There', 'userIds': [customer.id, customer.id, 999],
        }, headers=admin_headers)
        assert resp.json['data']['count'] == 1

    def test_bulk_without_targets(self, client, admin_headers):
        resp = client.post('/api/notifications/bulk', json={
            'type': 'IN_APP', 'title': 'Hi', 'message': 'There', 'userIds': [999],
        }, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "No users to notify"

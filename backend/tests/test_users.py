"""
Admin user management tests.

Verifies:
- Admins cannot block, demote or delete themselves or other admins
- Blocked users lose access until unblocked
- Users with order history are deactivated rather than deleted
"""

import pytest

from app.models import User


class TestUserListing:

    def test_stats(self, client, customer, other_customer, admin_headers, make_user):
        make_user(email='blocked@example.com', status='BLOCKED')

        data = client.get('/api/users/stats', headers=admin_headers).json['data']

        assert data['totalUsers'] == 4
        assert data['activeUsers'] == 3
        assert data['blockedUsers'] == 1
        assert (data['adminUsers'], data['regularUsers']) == (1, 3)

    def test_search_and_counts(self, client, customer, other_customer, admin_headers):
        resp = client.get('/api/users?search=ayesha', headers=admin_headers)

        assert resp.json['count'] == 1
        row = resp.json['data'][0]
        assert row['email'] == 'ayesha@example.com'
        assert (row['orderCount'], row['reviewCount']) == (0, 0)
        assert 'passwordHash' not in row

    def test_detail_includes_orders(self, client, customer, customer_headers, admin_headers, make_product, fill_cart, checkout_body):
        fill_cart(customer, [(make_product(), 1)])
        client.post('/api/orders', json=checkout_body, headers=customer_headers)

        data = client.get(f'/api/users/{customer.id}', headers=admin_headers).json['data']

        assert data['orderCount'] == 1
        assert data['orders'][0]['orderNumber'].startswith('RA-')

    def test_customer_forbidden(self, client, customer_headers):
        assert client.get('/api/users', headers=customer_headers).status_code == 403


class TestBlocking:

    def test_block_and_unblock(self, client, customer, customer_headers, admin_headers):
        resp = client.put(f'/api/users/{customer.id}/block', headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json['data']['status'] == 'BLOCKED'
        assert client.get('/api/auth/me', headers=customer_headers).status_code == 403

        blocked = client.get('/api/users/blocked', headers=admin_headers).json
        assert [u['id'] for u in blocked['data']] == [customer.id]

        client.put(f'/api/users/{customer.id}/unblock', headers=admin_headers)
        assert client.get('/api/auth/me', headers=customer_headers).status_code == 200

    def test_block_twice(self, client, customer, admin_headers):
        client.put(f'/api/users/{customer.id}/block', headers=admin_headers)
        resp = client.put(f'/api/users/{customer.id}/block', headers=admin_headers)
        assert resp.json['message'] == "User is already blocked"

    def test_unblock_active_user(self, client, customer, admin_headers):
        resp = client.put(f'/api/users/{customer.id}/unblock', headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "User is not blocked"

    def test_admins_cannot_be_blocked(self, client, admin, admin_headers, make_user):
        other_admin = make_user(email='second@resinart.com', role='ADMIN')
        resp = client.put(f'/api/users/{other_admin.id}/block', headers=admin_headers)
        assert resp.json['message'] == "Cannot block admin users"


class TestRoles:

    def test_promote(self, client, customer, admin_headers):
        resp = client.put(f'/api/users/{customer.id}/role', json={'role': 'admin'}, headers=admin_headers)
        assert resp.json['data']['role'] == 'ADMIN'
        assert resp.json['message'] == "User role updated to ADMIN"

    @pytest.mark.parametrize("role", ['OWNER', None])
    def test_invalid_role(self, client, customer, admin_headers, role):
        resp = client.put(f'/api/users/{customer.id}/role', json={'role': role}, headers=admin_headers)
        assert resp.json['message'] == "Invalid role. Must be USER or ADMIN"

    def test_cannot_change_own_role(self, client, admin, admin_headers):
        resp = client.put(f'/api/users/{admin.id}/role', json={'role': 'USER'}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "Cannot change your own role"


class TestAdminPasswordReset:

    def test_reset(self, client, customer, admin_headers):
        resp = client.put(f'/api/users/{customer.id}/reset-password', json={'newPassword': 'Temp4567'}, headers=admin_headers)
        assert resp.status_code == 200

        login = client.post('/api/auth/login', json={'email': 'ayesha@example.com', 'password': 'Temp4567'})
        assert login.status_code == 200

    def test_short_password(self, client, customer, admin_headers):
        resp = client.put(f'/api/users/{customer.id}/reset-password', json={'newPassword': '123'}, headers=admin_headers)
        assert resp.status_code == 400


class TestDeletion:

    def test_delete_without_orders(self, client, db_session, customer, admin_headers):
        user_id = customer.id

        resp = client.delete(f'/api/users/{user_id}', headers=admin_headers)

        assert resp.json['message'] == "User deleted successfully"
        assert db_session.get(User, user_id) is None

    def test_user_with_orders_is_deactivated(
        self, client, db_session, customer, customer_headers, admin_headers, make_product, fill_cart, checkout_body
    ):
        fill_cart(customer, [(make_product(), 1)])
        client.post('/api/orders', json=checkout_body, headers=customer_headers)

        resp = client.delete(f'/api/users/{customer.id}', headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json['message'] == "User deactivated (has order history)"
        assert db_session.get(User, customer.id).status == 'INACTIVE'
        assert client.post('/api/auth/login', json={
            'email': 'ayesha@example.com', 'password': 'Password123',
        }).status_code == 403

    def test_cannot_delete_self(self, client, admin, admin_headers):
        resp = client.delete(f'/api/users/{admin.id}', headers=admin_headers)
        assert resp.json['message'] == "Cannot delete your own account"

    def test_unknown_user(self, client, admin_headers):
        assert client.delete('/api/users/999', headers=admin_headers).status_code == 404

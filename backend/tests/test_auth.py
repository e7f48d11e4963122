"""
Authentication tests.

Verifies:
- Signup and login issue working bearer tokens
- Blocked and inactive accounts are refused
- Password change and the emailed reset flow
- Reset tokens are stored hashed and cleared when the email cannot be sent
"""

import pytest

from app.models import User
from app.services import email_service, token_service


class TestSignupLogin:

    def test_signup_returns_token(self, client, db_session):
        resp = client.post('/api/auth/signup', json={
            'name': 'Sana Malik',
            'email': 'Sana@Example.com',
            'password': 'resin123',
            'role': 'ADMIN',
        })

        assert resp.status_code == 201
        user = resp.json['data']['user']
        assert user['email'] == 'sana@example.com'
        assert user['role'] == 'USER'

        me = client.get('/api/auth/me', headers={'Authorization': f"Bearer {resp.json['data']['token']}"})
        assert me.status_code == 200
        assert me.json['data']['counts'] == {'orders': 0, 'reviews': 0}

    def test_duplicate_email(self, client, customer):
        resp = client.post('/api/auth/signup', json={
            'name': 'Copy', 'email': 'ayesha@example.com', 'password': 'resin123',
        })
        assert resp.status_code == 400
        assert resp.json['message'] == "A user with this email already exists"

    @pytest.mark.parametrize(
        "body",
        [
            {'email': 'a@b.com', 'password': 'resin123'},
            {'name': 'A', 'email': 'not-an-email', 'password': 'resin123'},
            {'name': 'A', 'email': 'a@b.com', 'password': '123'},
        ],
    )
    def test_signup_validation(self, client, db_session, body):
        assert client.post('/api/auth/signup', json=body).status_code == 400

    def test_login(self, client, customer):
        resp = client.post('/api/auth/login', json={'email': 'AYESHA@example.com', 'password': 'Password123'})
        assert resp.status_code == 200
        assert resp.json['data']['token']

    def test_wrong_password(self, client, customer):
        resp = client.post('/api/auth/login', json={'email': 'ayesha@example.com', 'password': 'nope-nope'})
        assert resp.status_code == 401
        assert resp.json['message'] == "Invalid email or password"

    def test_blocked_user_cannot_login(self, client, make_user):
        make_user(email='blocked@example.com', status='BLOCKED')
        resp = client.post('/api/auth/login', json={'email': 'blocked@example.com', 'password': 'Password123'})
        assert resp.status_code == 403
        assert resp.json['code'] == 'ACCOUNT_BLOCKED'


class TestTokens:

    def test_missing_token(self, client, db_session):
        resp = client.get('/api/auth/me')
        assert resp.status_code == 401
        assert resp.json['message'] == "Not authorized. No token provided."

    def test_garbage_token(self, client, db_session):
        resp = client.get('/api/auth/me', headers={'Authorization': 'Bearer abc.def.ghi'})
        assert resp.status_code == 401
        assert resp.json['code'] == 'INVALID_TOKEN'

    def test_blocked_after_issue(self, client, db_session, customer, customer_headers):
        customer.status = 'BLOCKED'
        db_session.commit()
        assert client.get('/api/auth/me', headers=customer_headers).status_code == 403

    def test_deleted_user(self, client, db_session, customer, customer_headers):
        db_session.delete(customer)
        db_session.commit()
        resp = client.get('/api/auth/me', headers=customer_headers)
        assert resp.status_code == 401
        assert resp.json['code'] == 'USER_NOT_FOUND'


class TestProfile:

    def test_update_profile(self, client, customer_headers):
        resp = client.put('/api/auth/profile', json={'phone': '03001112222', 'address': 'DHA Lahore'}, headers=customer_headers)
        assert resp.status_code == 200
        assert resp.json['data']['phone'] == '03001112222'

    def test_empty_profile_update(self, client, customer_headers):
        resp = client.put('/api/auth/profile', json={}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "No fields to update"

    def test_change_password(self, client, customer_headers):
        resp = client.put('/api/auth/change-password', json={
            'currentPassword': 'Password123',
            'newPassword': 'NewResin456',
            'confirmPassword': 'NewResin456',
        }, headers=customer_headers)
        assert resp.status_code == 200

        login = client.post('/api/auth/login', json={'email': 'ayesha@example.com', 'password': 'NewResin456'})
        assert login.status_code == 200

    def test_change_password_wrong_current(self, client, customer_headers):
        resp = client.put('/api/auth/change-password', json={
            'currentPassword': 'wrong-one',
            'newPassword': 'NewResin456',
            'confirmPassword': 'NewResin456',
        }, headers=customer_headers)
        assert resp.status_code == 401

    def test_change_password_must_differ(self, client, customer_headers):
        resp = client.put('/api/auth/change-password', json={
            'currentPassword': 'Password123',
            'newPassword': 'Password123',
            'confirmPassword': 'Password123',
        }, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "New password must be different from current password"

    def test_delete_account(self, client, db_session, customer, customer_headers):
        user_id = customer.id
        resp = client.delete('/api/auth/account', headers=customer_headers)
        assert resp.status_code == 200
        assert db_session.get(User, user_id) is None


class TestPasswordReset:

    @pytest.fixture
    def captured_links(self, monkeypatch):
        links = []
        original = email_service.password_reset_email

        def _capture(user_name, reset_url):
            links.append(reset_url)
            return original(user_name, reset_url)

        monkeypatch.setattr(email_service, 'password_reset_email', _capture)
        return links

    def test_unknown_email_is_silent(self, client, db_session):
        resp = client.post('/api/auth/forgot-password', json={'email': 'nobody@example.com'})
        assert resp.status_code == 200

    def test_reset_flow(self, client, db_session, customer, captured_links):
        resp = client.post('/api/auth/forgot-password', json={'email': 'ayesha@example.com'})
        assert resp.status_code == 200

        raw_token = captured_links[0].rsplit('token=', 1)[1]
        assert customer.reset_password_token == token_service.hash_reset_token(raw_token)
        assert customer.reset_password_token != raw_token

        reset = client.put(f'/api/auth/reset-password/{raw_token}', json={
            'password': 'Fresh789', 'confirmPassword': 'Fresh789',
        })
        assert reset.status_code == 200
        assert customer.reset_password_token is None

        login = client.post('/api/auth/login', json={'email': 'ayesha@example.com', 'password': 'Fresh789'})
        assert login.status_code == 200

        again = client.post(f'/api/auth/reset-password/{raw_token}', json={
            'password': 'Other789', 'confirmPassword': 'Other789',
        })
        assert again.status_code == 400

    def test_email_failure_clears_token(self, client, db_session, customer, monkeypatch):
        def _fail(**kwargs):
            raise email_service.EmailDeliveryError("SMTP down")

        monkeypatch.setattr(email_service, 'send_email', _fail)

        resp = client.post('/api/auth/forgot-password', json={'email': 'ayesha@example.com'})

        assert resp.status_code == 500
        assert resp.json['code'] == 'EMAIL_DELIVERY_FAILED'
        assert customer.reset_password_token is None
        assert customer.reset_password_expire is None

    def test_mismatched_confirmation(self, client, db_session):
        resp = client.post('/api/auth/reset-password/whatever', json={
            'password': 'Fresh789', 'confirmPassword': 'Fresh780',
        })
        assert resp.status_code == 400
        assert resp.json['message'] == "Passwords do not match"

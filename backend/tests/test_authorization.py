"""
Authorization tests for the Resin Art API.

Verifies:
- Unauthenticated requests return 401
- Customers are denied admin operations (403)
- Admins can perform privileged operations
- Catalogue and system endpoints stay public
"""

import pytest


ADMIN_ENDPOINTS = [
    ("GET", "/api/users"),
    ("GET", "/api/users/stats"),
    ("PUT", "/api/users/1/block"),
    ("POST", "/api/products"),
    ("PUT", "/api/products/1"),
    ("DELETE", "/api/products/1"),
    ("GET", "/api/orders"),
    ("GET", "/api/orders/stats"),
    ("PUT", "/api/orders/1/status"),
    ("PUT", "/api/orders/1/location"),
    ("GET", "/api/payments"),
    ("GET", "/api/payments/stats"),
    ("PUT", "/api/payments/1/status"),
    ("GET", "/api/reviews"),
    ("PUT", "/api/reviews/1/approve"),
    ("GET", "/api/stock"),
    ("PUT", "/api/stock/bulk"),
    ("GET", "/api/inventory"),
    ("GET", "/api/reports/dashboard"),
    ("GET", "/api/reports/profit"),
    ("POST", "/api/reports/expenses"),
    ("POST", "/api/reports/budgets"),
    ("GET", "/api/reports/sales"),
    ("POST", "/api/notifications"),
    ("POST", "/api/notifications/bulk"),
    ("GET", "/api/contact"),
    ("GET", "/api/contact/1"),
    ("DELETE", "/api/contact/1"),
]

CUSTOMER_ENDPOINTS = [
    ("GET", "/api/auth/me"),
    ("PUT", "/api/auth/profile"),
    ("GET", "/api/cart"),
    ("POST", "/api/cart"),
    ("POST", "/api/orders"),
    ("GET", "/api/orders/my-orders"),
    ("PUT", "/api/orders/1/cancel"),
    ("POST", "/api/payments"),
    ("GET", "/api/payments/my-payments"),
    ("POST", "/api/reviews"),
    ("GET", "/api/notifications"),
    ("GET", "/api/notifications/preferences"),
]


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize("method,path", ADMIN_ENDPOINTS + CUSTOMER_ENDPOINTS)
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path, json={})
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json['success'] is False


# =============================================================================
# CUSTOMERS DENIED ADMIN OPERATIONS: 403
# =============================================================================


class TestCustomerDenied:
    """Customer role cannot reach admin routes, whatever the target."""

    @pytest.mark.parametrize("method,path", ADMIN_ENDPOINTS)
    def test_forbidden(self, client, customer_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=customer_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"
        assert resp.json['message'] == "User role 'USER' is not authorized to access this route."


# =============================================================================
# ADMIN CAN PERFORM PRIVILEGED OPERATIONS: 200
# =============================================================================


class TestAdminAccess:

    @pytest.mark.parametrize(
        "path",
        [
            "/api/users",
            "/api/orders",
            "/api/payments",
            "/api/reviews",
            "/api/stock",
            "/api/inventory",
            "/api/reports/dashboard",
            "/api/reports/budgets",
            "/api/contact",
        ],
    )
    def test_can_read(self, client, admin_headers, path):
        assert client.get(path, headers=admin_headers).status_code == 200


# =============================================================================
# PUBLIC ENDPOINTS: NO AUTH REQUIRED
# =============================================================================


class TestPublicEndpoints:

    @pytest.mark.parametrize(
        "path",
        ["/", "/health", "/api", "/api/products", "/api/products/featured", "/api/products/categories"],
    )
    def test_public(self, client, db_session, path):
        assert client.get(path).status_code == 200

    def test_health_reports_database(self, client, db_session):
        data = client.get('/health').json
        assert data['status'] == 'healthy'
        assert data['checks']['database']['status'] == 'healthy'

    def test_unknown_route(self, client, db_session):
        resp = client.get('/api/does-not-exist')
        assert resp.status_code == 404
        assert resp.json['success'] is False

    def test_cors_for_allowed_origin(self, app, client, db_session):
        origin = sorted(app.config['CORS_ORIGINS'])[0]
        resp = client.get('/api', headers={'Origin': origin})
        assert resp.headers['Access-Control-Allow-Origin'] == origin
        assert 'Access-Control-Allow-Origin' not in client.get('/api', headers={'Origin': 'https://evil.example'}).headers

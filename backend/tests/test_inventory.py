"""
Stock and inventory tests.

Verifies:
- Every stock change writes an InventoryLog row
- Subtracting below zero is refused and leaves stock untouched
- Alert tiers split out-of-stock, critical and low products
"""

import pytest

from app.models import InventoryLog


class TestStockUpdates:

    @pytest.mark.parametrize(
        "operation,quantity,expected",
        [
            ('set', 12, 12),
            ('add', 3, 13),
            ('subtract', 4, 6),
            (None, 7, 7),
        ],
    )
    def test_operations(self, client, db_session, admin_headers, make_product, operation, quantity, expected):
        product = make_product(stock=10)
        body = {'quantity': quantity}
        if operation:
            body['operation'] = operation

        resp = client.put(f'/api/stock/{product.id}', json=body, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json['data']['product']['stock'] == expected
        log = db_session.query(InventoryLog).filter_by(product_id=product.id).one()
        assert (log.previous_stock, log.new_stock, log.change_amount) == (10, expected, expected - 10)

    def test_subtract_below_zero(self, client, db_session, admin_headers, make_product):
        product = make_product(stock=2)

        resp = client.put(f'/api/stock/{product.id}', json={'quantity': 5, 'operation': 'subtract'}, headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json['message'] == "Insufficient stock"
        assert product.stock == 2
        assert db_session.query(InventoryLog).count() == 0

    def test_quantity_required(self, client, admin_headers, make_product):
        resp = client.put(f'/api/stock/{make_product().id}', json={}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "Quantity is required"

    def test_bulk_update(self, client, db_session, admin_headers, make_product):
        first = make_product(stock=1)
        second = make_product(stock=2)

        resp = client.put('/api/stock/bulk', json={'updates': [
            {'productId': first.id, 'quantity': 10},
            {'productId': second.id, 'quantity': 20},
        ]}, headers=admin_headers)

        assert resp.status_code == 200
        assert (first.stock, second.stock) == (10, 20)
        assert db_session.query(InventoryLog).filter_by(change_type='BULK_UPDATE').count() == 2

    def test_bulk_update_is_all_or_nothing(self, client, admin_headers, make_product):
        product = make_product(stock=1)

        resp = client.put('/api/stock/bulk', json={'updates': [
            {'productId': product.id, 'quantity': 10},
            {'productId': 999, 'quantity': 5},
        ]}, headers=admin_headers)

        assert resp.status_code == 404
        assert product.stock == 1

    def test_customer_forbidden(self, client, customer_headers, make_product):
        resp = client.put(f'/api/stock/{make_product().id}', json={'quantity': 1}, headers=customer_headers)
        assert resp.status_code == 403


class TestAlerts:

    def test_tiers(self, client, admin_headers, make_product):
        make_product(name="Empty", stock=0)
        make_product(name="Critical", stock=3)
        make_product(name="Low", stock=8)
        make_product(name="Healthy", stock=40)

        data = client.get('/api/stock/alerts', headers=admin_headers).json['data']

        assert [p['name'] for p in data['outOfStock']['products']] == ["Empty"]
        assert [p['name'] for p in data['criticalLow']['products']] == ["Critical"]
        assert [p['name'] for p in data['low']['products']] == ["Low"]

    def test_custom_threshold(self, client, admin_headers, make_product):
        make_product(stock=15)
        resp = client.get('/api/inventory/alerts?threshold=20', headers=admin_headers)
        assert resp.json['summary']['totalAlerts'] == 1
        assert resp.json['summary']['lowCount'] == 1


class TestInventoryWithReason:

    def test_reason_required(self, client, admin_headers, make_product):
        resp = client.put(f'/api/inventory/{make_product().id}', json={'quantity': 1}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "Reason for stock update is required"

    def test_reason_recorded_and_history(self, client, admin_headers, make_product):
        product = make_product(stock=10)

        resp = client.put(f'/api/inventory/{product.id}', json={
            'quantity': 3, 'operation': 'subtract', 'reason': 'Cracked in transit',
        }, headers=admin_headers)

        assert resp.json['message'] == "Stock updated successfully from 10 to 7"
        assert resp.json['data']['log']['reason'] == 'Cracked in transit'

        history = client.get(f'/api/inventory/history/{product.id}', headers=admin_headers).json
        assert history['data']['product']['stock'] == 7
        assert len(history['data']['history']) == 1

    def test_overview_summary(self, client, admin_headers, make_product):
        make_product(stock=0)
        make_product(stock=20)

        summary = client.get('/api/inventory', headers=admin_headers).json['summary']

        assert summary['totalProducts'] == 2
        assert summary['totalStock'] == 20
        assert summary['outOfStockCount'] == 1
        assert summary['lowStockCount'] == 1

"""
Payment tests.

Verifies:
- Non-COD payments complete immediately and confirm a PENDING order
- COD stays PENDING until an admin settles it
- Paid and cancelled orders cannot be paid again
- Only the order owner can pay
"""

import pytest

from app.models import Payment


@pytest.fixture
def order(client, customer, customer_headers, make_product, fill_cart, checkout_body):
    fill_cart(customer, [(make_product(price_cents=300_000, stock=5), 2)])
    resp = client.post('/api/orders', json=checkout_body, headers=customer_headers)
    assert resp.status_code == 201
    return resp.json['data']


def _pay(client, headers, order_id, method, **extra):
    return client.post('/api/payments', json=dict(orderId=order_id, method=method, **extra), headers=headers)


class TestProcessPayment:

    def test_wallet_payment_confirms_order(self, client, customer_headers, order):
        resp = _pay(client, customer_headers, order['id'], 'EASYPAISA', transactionId='EP-1001')

        assert resp.status_code == 201
        assert resp.json['message'] == "Payment successful! Your order is being processed."
        payment = resp.json['data']
        assert payment['status'] == 'COMPLETED'
        assert payment['amountCents'] == 600_000
        assert payment['paidAt'] is not None
        assert payment['order']['status'] == 'CONFIRMED'

        detail = client.get(f"/api/orders/{order['id']}", headers=customer_headers).json['data']
        assert detail['confirmedAt'] is not None
        assert detail['tracking'][0]['status'] == 'Payment Received'
        assert detail['tracking'][0]['description'] == "Payment of Rs. 6,000.00 received via EASYPAISA"

    def test_cod_stays_pending(self, client, customer_headers, order):
        resp = _pay(client, customer_headers, order['id'], 'COD')

        assert resp.status_code == 201
        assert resp.json['message'] == "Order confirmed for Cash on Delivery. Pay when you receive your order."
        assert resp.json['data']['status'] == 'PENDING'
        assert resp.json['data']['paidAt'] is None
        assert resp.json['data']['order']['status'] == 'PENDING'

    def test_cannot_pay_twice(self, client, db_session, customer_headers, order):
        _pay(client, customer_headers, order['id'], 'CREDIT_CARD')

        resp = _pay(client, customer_headers, order['id'], 'DEBIT_CARD')

        assert resp.status_code == 400
        assert resp.json['message'] == "This order has already been paid"
        assert db_session.query(Payment).count() == 1

    def test_cannot_pay_cancelled_order(self, client, customer_headers, order):
        client.put(f"/api/orders/{order['id']}/cancel", json={}, headers=customer_headers)

        resp = _pay(client, customer_headers, order['id'], 'JAZZCASH')

        assert resp.status_code == 400
        assert resp.json['message'] == "Cannot pay for a cancelled order"

    def test_payment_does_not_regress_shipped_order(self, client, customer_headers, admin_headers, order):
        client.put(f"/api/orders/{order['id']}/status", json={'status': 'SHIPPED'}, headers=admin_headers)

        resp = _pay(client, customer_headers, order['id'], 'BANK_TRANSFER')

        assert resp.json['data']['order']['status'] == 'SHIPPED'

    def test_only_owner_pays(self, client, other_headers, admin_headers, order):
        assert _pay(client, other_headers, order['id'], 'COD').status_code == 403
        assert _pay(client, admin_headers, order['id'], 'COD').status_code == 403

    @pytest.mark.parametrize(
        "body,message",
        [
            ({}, "Order ID and payment method are required"),
            ({'orderId': 'x', 'method': 'COD'}, "Invalid order ID"),
        ],
    )
    def test_bad_input(self, client, customer_headers, body, message):
        resp = client.post('/api/payments', json=body, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == message

    def test_unknown_order(self, client, customer_headers, db_session):
        assert _pay(client, customer_headers, 999, 'COD').status_code == 404


class TestRetryAndReads:

    def test_retry_after_failure(self, client, customer_headers, admin_headers, order):
        payment_id = _pay(client, customer_headers, order['id'], 'COD').json['data']['id']
        client.put(f'/api/payments/{payment_id}/status', json={'status': 'FAILED'}, headers=admin_headers)

        resp = client.post(f"/api/payments/retry/{order['id']}", json={'method': 'JAZZCASH'}, headers=customer_headers)

        assert resp.status_code == 200
        assert resp.json['data']['status'] == 'COMPLETED'
        assert resp.json['data']['method'] == 'JAZZCASH'
        assert resp.json['data']['failureReason'] is None

    def test_retry_completed_payment_rejected(self, client, customer_headers, order):
        _pay(client, customer_headers, order['id'], 'CREDIT_CARD')
        resp = client.post(f"/api/payments/retry/{order['id']}", json={}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "Payment cannot be retried for this order"

    def test_payment_for_unpaid_order(self, client, customer_headers, other_headers, order):
        resp = client.get(f"/api/payments/order/{order['id']}", headers=customer_headers)
        assert resp.json['data']['payment']['status'] == 'NOT_INITIATED'
        assert client.get(f"/api/payments/order/{order['id']}", headers=other_headers).status_code == 403

    def test_admin_settles_cod_and_stats(self, client, customer_headers, admin_headers, order):
        payment_id = _pay(client, customer_headers, order['id'], 'COD').json['data']['id']
        assert client.get('/api/payments/pending', headers=admin_headers).json['count'] == 1

        resp = client.put(f'/api/payments/{payment_id}/status', json={'status': 'COMPLETED'}, headers=admin_headers)
        assert resp.json['data']['status'] == 'COMPLETED'
        assert resp.json['data']['user']['email'] == 'ayesha@example.com'

        stats = client.get('/api/payments/stats', headers=admin_headers).json['data']
        assert stats['completedPayments'] == 1
        assert stats['totalRevenueCents'] == 600_000
        assert stats['paymentsByMethod'] == [{'method': 'COD', 'count': 1, 'totalCents': 600_000}]

    def test_my_payments(self, client, customer_headers, other_headers, order):
        _pay(client, customer_headers, order['id'], 'COD')
        assert client.get('/api/payments/my-payments', headers=customer_headers).json['count'] == 1
        assert client.get('/api/payments/my-payments', headers=other_headers).json['count'] == 0

"""Cart tests: one active cart per user, stock-checked quantities, owner-only edits."""

import pytest
from sqlalchemy.exc import IntegrityError

from app.models import Cart


class TestAddToCart:

    def test_creates_cart_on_first_add(self, client, db_session, customer, customer_headers, make_product):
        product = make_product(name="Ocean Coaster", price_cents=2_500, stock=4)

        resp = client.post('/api/cart', json={'productId': product.id, 'quantity': 2}, headers=customer_headers)

        assert resp.status_code == 201
        assert resp.json['message'] == "Ocean Coaster added to cart successfully!"
        assert resp.json['data']['summary'] == {'totalItems': 2, 'subtotalCents': 5_000}
        assert db_session.query(Cart).filter_by(user_id=customer.id, is_active=True).count() == 1

    def test_adding_again_merges_quantity(self, client, customer_headers, make_product):
        product = make_product(stock=5)
        client.post('/api/cart', json={'productId': product.id, 'quantity': 2}, headers=customer_headers)

        resp = client.post('/api/cart', json={'productId': product.id, 'quantity': 2}, headers=customer_headers)

        assert resp.json['data']['item']['quantity'] == 4
        cart = client.get('/api/cart', headers=customer_headers).json['data']
        assert len(cart['items']) == 1

    def test_merge_cannot_exceed_stock(self, client, customer_headers, make_product):
        product = make_product(stock=3)
        client.post('/api/cart', json={'productId': product.id, 'quantity': 2}, headers=customer_headers)

        resp = client.post('/api/cart', json={'productId': product.id, 'quantity': 2}, headers=customer_headers)

        assert resp.status_code == 400
        assert resp.json['message'] == "Cannot add 2 more. Only 1 more available."

    def test_insufficient_stock(self, client, customer_headers, make_product):
        product = make_product(stock=1)
        resp = client.post('/api/cart', json={'productId': product.id, 'quantity': 3}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "Insufficient stock. Only 1 available."

    def test_inactive_product(self, client, customer_headers, make_product):
        product = make_product(is_active=False)
        resp = client.post('/api/cart', json={'productId': product.id}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "This product is no longer available"

    @pytest.mark.parametrize(
        "body,message",
        [
            ({}, "Product ID is required"),
            ({'productId': 'abc'}, "Invalid product ID or quantity"),
            ({'productId': 1, 'quantity': 0}, "Invalid product ID or quantity"),
        ],
    )
    def test_bad_input(self, client, customer_headers, body, message):
        resp = client.post('/api/cart', json=body, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == message

    def test_unknown_product(self, client, customer_headers):
        resp = client.post('/api/cart', json={'productId': 999}, headers=customer_headers)
        assert resp.status_code == 404


class TestEditCart:

    def test_update_quantity(self, client, customer, customer_headers, make_product, fill_cart):
        product = make_product(stock=5)
        cart = fill_cart(customer, [(product, 1)])
        item_id = cart.items[0].id

        resp = client.put(f'/api/cart/{item_id}', json={'quantity': 4}, headers=customer_headers)

        assert resp.status_code == 200
        assert resp.json['data']['quantity'] == 4

    def test_update_beyond_stock(self, client, customer, customer_headers, make_product, fill_cart):
        product = make_product(stock=2)
        item_id = fill_cart(customer, [(product, 1)]).items[0].id

        resp = client.put(f'/api/cart/{item_id}', json={'quantity': 3}, headers=customer_headers)

        assert resp.status_code == 400
        assert resp.json['message'] == "Only 2 available in stock"

    def test_cannot_touch_another_users_item(self, client, customer, other_headers, make_product, fill_cart):
        item_id = fill_cart(customer, [(make_product(), 1)]).items[0].id

        assert client.put(f'/api/cart/{item_id}', json={'quantity': 2}, headers=other_headers).status_code == 403
        assert client.delete(f'/api/cart/{item_id}', headers=other_headers).status_code == 403

    def test_remove_item(self, client, customer, customer_headers, make_product, fill_cart):
        product = make_product(name="Galaxy Tray")
        item_id = fill_cart(customer, [(product, 1)]).items[0].id

        resp = client.delete(f'/api/cart/{item_id}', headers=customer_headers)

        assert resp.json['message'] == "Galaxy Tray removed from cart"
        assert resp.json['data']['summary']['totalItems'] == 0

    def test_clear_and_count(self, client, customer, customer_headers, make_product, fill_cart):
        assert client.delete('/api/cart', headers=customer_headers).json['message'] == "Cart is already empty"

        fill_cart(customer, [(make_product(), 2), (make_product(), 1)])
        assert client.get('/api/cart/count', headers=customer_headers).json['data']['count'] == 3

        assert client.delete('/api/cart', headers=customer_headers).json['message'] == "Cart cleared successfully"
        assert client.get('/api/cart/count', headers=customer_headers).json['data']['count'] == 0

    def test_summary_uses_current_price(self, client, db_session, customer, customer_headers, make_product, fill_cart):
        product = make_product(price_cents=10_000)
        fill_cart(customer, [(product, 2)])
        product.discount_price_cents = 7_500
        db_session.commit()

        cart = client.get('/api/cart', headers=customer_headers).json['data']

        assert cart['summary']['subtotalCents'] == 15_000
        assert cart['items'][0]['priceCents'] == 10_000
        assert cart['items'][0]['currentPriceCents'] == 7_500


class TestActiveCartIndex:

    def test_inactive_carts_are_unlimited(self, db_session, customer):
        db_session.add_all([
            Cart(user_id=customer.id, is_active=False),
            Cart(user_id=customer.id, is_active=False),
            Cart(user_id=customer.id, is_active=True),
        ])
        db_session.commit()

        assert db_session.query(Cart).filter_by(user_id=customer.id).count() == 3

    def test_second_active_cart_rejected(self, db_session, customer):
        db_session.add(Cart(user_id=customer.id, is_active=True))
        db_session.commit()

        db_session.add(Cart(user_id=customer.id, is_active=True))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

        assert db_session.query(Cart).filter_by(user_id=customer.id, is_active=True).count() == 1

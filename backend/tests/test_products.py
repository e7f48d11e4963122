"""Catalog tests: public browsing, admin CRUD, soft and hard delete."""

from app.models import InventoryLog, Product, Review


class TestBrowse:

    def test_lists_only_active(self, client, make_product):
        make_product(name="Visible Coaster")
        make_product(name="Hidden Coaster", is_active=False)

        resp = client.get('/api/products')

        assert resp.status_code == 200
        assert [p['name'] for p in resp.json['data']] == ["Visible Coaster"]
        assert resp.json['pagination']['itemsPerPage'] == 12
        assert resp.json['pagination']['totalItems'] == 1

    def test_filters_by_category_and_price(self, client, make_product):
        make_product(name="Cheap Keychain", price_cents=50_000, category='KEYCHAINS')
        make_product(name="Dear Keychain", price_cents=300_000, category='KEYCHAINS')
        make_product(name="Discounted Keychain", price_cents=300_000, discount_price_cents=90_000, category='KEYCHAINS')
        make_product(name="Clock", price_cents=60_000, category='CLOCKS')

        resp = client.get('/api/products?category=keychains&maxPrice=1000&sort=name')

        assert [p['name'] for p in resp.json['data']] == ["Cheap Keychain", "Discounted Keychain"]

    def test_pagination(self, client, make_product):
        for _ in range(5):
            make_product()

        resp = client.get('/api/products?page=2&limit=2')

        meta = resp.json['pagination']
        assert resp.json['count'] == 2
        assert meta['currentPage'] == 2
        assert meta['totalPages'] == 3
        assert meta['hasNextPage'] is True
        assert meta['hasPrevPage'] is True

    def test_quick_search_needs_two_characters(self, client, make_product):
        make_product(name="Geode Wall Clock")
        assert client.get('/api/products/search?q=g').json['count'] == 0
        assert client.get('/api/products/search?q=geode').json['count'] == 1

    def test_categories_with_counts(self, client, make_product):
        make_product(category='TRAYS')
        make_product(category='TRAYS')
        make_product(category='JEWELRY')

        data = client.get('/api/products/categories').json['data']

        assert data == [{'name': 'JEWELRY', 'count': 1}, {'name': 'TRAYS', 'count': 2}]

    def test_inactive_product_hidden_except_for_admin(self, client, admin_headers, make_product):
        product = make_product(is_active=False)

        assert client.get(f'/api/products/{product.id}').status_code == 404
        assert client.get(f'/api/products/{product.id}', headers=admin_headers).status_code == 200

    def test_bad_token_still_browses(self, client, make_product):
        make_product()
        resp = client.get('/api/products', headers={'Authorization': 'Bearer not-a-token'})
        assert resp.status_code == 200


class TestAdminCatalog:

    def test_create_with_initial_stock(self, client, db_session, admin_headers):
        resp = client.post('/api/products', json={
            'name': 'Pressed Flower Pendant',
            'description': 'Real flowers in resin',
            'price': '1499.50',
            'category': 'jewelry',
            'stock': 7,
            'tags': ['floral'],
        }, headers=admin_headers)

        assert resp.status_code == 201
        data = resp.json['data']
        assert data['priceCents'] == 149_950
        assert data['category'] == 'JEWELRY'
        assert data['stock'] == 7

        log = db_session.query(InventoryLog).filter_by(product_id=data['id']).one()
        assert log.change_amount == 7
        assert log.reason == "Initial stock"

    def test_create_requires_fields(self, client, admin_headers):
        resp = client.post('/api/products', json={'name': 'Nameless'}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json['message'] == "Please provide name, description, price, and category"

    def test_discount_cannot_exceed_price(self, client, admin_headers):
        resp = client.post('/api/products', json={
            'name': 'Tray', 'description': 'x', 'price': '100', 'discountPrice': '150', 'category': 'TRAYS',
        }, headers=admin_headers)
        assert resp.status_code == 400

    def test_customer_cannot_create(self, client, customer_headers):
        resp = client.post('/api/products', json={'name': 'x'}, headers=customer_headers)
        assert resp.status_code == 403

    def test_update_stock_is_logged(self, client, db_session, admin_headers, make_product):
        product = make_product(stock=3)

        resp = client.put(f'/api/products/{product.id}', json={'stock': 9, 'price': '250'}, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json['data']['stock'] == 9
        assert resp.json['data']['priceCents'] == 25_000
        log = db_session.query(InventoryLog).filter_by(product_id=product.id).one()
        assert (log.previous_stock, log.new_stock) == (3, 9)


class TestDelete:

    def test_soft_delete_without_history(self, client, db_session, admin_headers, make_product):
        product = make_product()

        resp = client.delete(f'/api/products/{product.id}', headers=admin_headers)

        assert resp.json['message'] == "Product deleted successfully!"
        assert product.is_active is False

    def test_history_requires_force(self, client, db_session, customer, admin_headers, make_product):
        product = make_product()
        db_session.add(Review(user_id=customer.id, product_id=product.id, rating=5))
        db_session.commit()

        warn = client.delete(f'/api/products/{product.id}', headers=admin_headers)
        assert warn.status_code == 200
        assert warn.json['success'] is False
        assert warn.json['warning'] is True
        assert product.is_active is True

        forced = client.delete(f'/api/products/{product.id}?force=true', headers=admin_headers)
        assert forced.json['message'] == "Product and all related data deleted successfully!"
        assert db_session.query(Product).count() == 0
        assert db_session.query(Review).count() == 0

    def test_permanent_delete(self, client, db_session, admin_headers, make_product):
        product = make_product()
        resp = client.delete(f'/api/products/{product.id}/permanent', headers=admin_headers)
        assert resp.json['message'] == "Product permanently deleted!"
        assert db_session.query(Product).count() == 0

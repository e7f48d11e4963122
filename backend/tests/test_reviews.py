"""Review tests: one review per user and product, rating aggregates, moderation."""

import pytest


def _review(client, headers, product_id, rating, comment=None):
    return client.post('/api/reviews', json={'productId': product_id, 'rating': rating, 'comment': comment}, headers=headers)


class TestReviews:

    def test_create_updates_product_rating(self, client, customer_headers, other_headers, make_product):
        product = make_product()

        assert _review(client, customer_headers, product.id, 5, "Stunning colours").status_code == 201
        assert _review(client, other_headers, product.id, 4).status_code == 201

        assert product.average_rating == 4.5
        assert product.total_reviews == 2

    def test_one_review_per_product(self, client, customer_headers, make_product):
        product = make_product()
        _review(client, customer_headers, product.id, 5)

        resp = _review(client, customer_headers, product.id, 3)

        assert resp.status_code == 400
        assert resp.json['message'] == "You have already reviewed this product"

    @pytest.mark.parametrize("rating", [6, -1, 'five'])
    def test_rating_range(self, client, customer_headers, make_product, rating):
        resp = _review(client, customer_headers, make_product().id, rating)
        assert resp.status_code == 400
        assert resp.json['message'] == "Rating must be between 1 and 5"

    def test_missing_fields(self, client, customer_headers, db_session):
        resp = client.post('/api/reviews', json={'rating': 4}, headers=customer_headers)
        assert resp.json['message'] == "Product ID and rating are required"

    def test_unknown_product(self, client, customer_headers, db_session):
        assert _review(client, customer_headers, 999, 4).status_code == 404

    def test_update_and_delete_recompute(self, client, customer_headers, other_headers, make_product):
        product = make_product()
        review_id = _review(client, customer_headers, product.id, 2).json['data']['id']
        _review(client, other_headers, product.id, 4)

        client.put(f'/api/reviews/{review_id}', json={'rating': 5}, headers=customer_headers)
        assert product.average_rating == 4.5

        client.delete(f'/api/reviews/{review_id}', headers=customer_headers)
        assert product.average_rating == 4.0
        assert product.total_reviews == 1

    def test_others_cannot_edit(self, client, customer_headers, other_headers, admin_headers, make_product):
        review_id = _review(client, customer_headers, make_product().id, 3).json['data']['id']

        resp = client.put(f'/api/reviews/{review_id}', json={'rating': 1}, headers=other_headers)
        assert resp.status_code == 403
        assert resp.json['message'] == "Not authorized to update this review"

        assert client.delete(f'/api/reviews/{review_id}', headers=admin_headers).status_code == 200

    def test_product_reviews_distribution(self, client, customer_headers, other_headers, make_product):
        product = make_product()
        _review(client, customer_headers, product.id, 5)
        _review(client, other_headers, product.id, 5)

        resp = client.get(f'/api/reviews/product/{product.id}')

        assert resp.json['count'] == 2
        assert resp.json['ratingDistribution'] == {'1': 0, '2': 0, '3': 0, '4': 0, '5': 2}


class TestModeration:

    def test_unapproved_reviews_leave_aggregates(self, client, customer_headers, other_headers, admin_headers, make_product):
        product = make_product()
        _review(client, customer_headers, product.id, 5)
        spam_id = _review(client, other_headers, product.id, 1).json['data']['id']

        resp = client.put(f'/api/reviews/{spam_id}/approve', json={'isApproved': False}, headers=admin_headers)

        assert resp.status_code == 200
        assert product.average_rating == 5.0
        assert product.total_reviews == 1
        assert client.get(f'/api/reviews/product/{product.id}').json['count'] == 1

        pending = client.get('/api/reviews?isApproved=false', headers=admin_headers).json
        assert [r['id'] for r in pending['data']] == [spam_id]

    def test_customer_cannot_moderate(self, client, customer_headers, make_product):
        review_id = _review(client, customer_headers, make_product().id, 5).json['data']['id']
        resp = client.put(f'/api/reviews/{review_id}/approve', json={'isApproved': False}, headers=customer_headers)
        assert resp.status_code == 403

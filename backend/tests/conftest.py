"""
Pytest fixtures for resin art backend tests.

Provides an in-memory database, a test client, and user/product factories.
"""

import pytest
from app import create_app
from app.extensions import db
from app.models import Product, CartItem
from app.services.auth_service import create_user
from app.services.cart_service import get_or_create_cart
from app.services.token_service import generate_token


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'APP_ENV': 'testing',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'MAIL_SERVER': None,
        'MAIL_ASYNC': False,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp('uploads')),
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data for each test; the app context stays pushed for the whole test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        db.session.remove()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


def auth_headers(user) -> dict:
    """Helper to create Authorization headers for a user."""
    return {'Authorization': f'Bearer {generate_token(user.id)}'}


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: make_user(email=..., role=..., status=...)"""
    counter = {'n': 0}

    def _make(*, name=None, email=None, password='Password123', role='USER', status='ACTIVE'):
        counter['n'] += 1
        user = create_user(
            name=name or f"Customer {counter['n']}",
            email=email or f"customer{counter['n']}@example.com",
            password=password,
            role=role,
        )
        user.status = status
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user(name="Ayesha Khan", email="ayesha@example.com")


@pytest.fixture(scope='function')
def other_customer(make_user):
    return make_user(name="Bilal Ahmed", email="bilal@example.com")


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(name="Store Admin", email="admin@resinart.com", role='ADMIN')


@pytest.fixture(scope='function')
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture(scope='function')
def other_headers(other_customer):
    return auth_headers(other_customer)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture(scope='function')
def make_product(db_session, admin):
    """Factory: make_product(price_cents=..., stock=...)"""
    counter = {'n': 0}

    def _make(*, name=None, price_cents=10_000, discount_price_cents=None, stock=10,
              category='COASTERS', is_active=True):
        counter['n'] += 1
        product = Product(
            name=name or f"Resin Piece {counter['n']}",
            description="Hand poured epoxy resin",
            price_cents=price_cents,
            discount_price_cents=discount_price_cents,
            category=category,
            stock=stock,
            is_active=is_active,
            images=[],
            tags=[],
            specifications={},
            created_by_id=admin.id,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def fill_cart(db_session):
    """fill_cart(user, [(product, qty), ...]) puts items straight into the active cart."""
    def _fill(user, lines):
        cart = get_or_create_cart(user.id)
        for product, quantity in lines:
            db_session.add(CartItem(
                cart_id=cart.id,
                product_id=product.id,
                quantity=quantity,
                price_cents=product.unit_price_cents,
            ))
        db_session.commit()
        return cart

    return _fill


@pytest.fixture(scope='function')
def checkout_body():
    return {
        'shippingAddress': '12 Canal Road, Lahore',
        'shippingPhone': '03001234567',
        'paymentMethod': 'COD',
    }


@pytest.fixture(scope='function')
def headers_for():
    """headers_for(user) for users built inside a test."""
    return auth_headers

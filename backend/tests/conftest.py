"""
Pytest fixtures for shopledger backend tests.

Provides test database setup, users with each role, auth helpers and
small factories for products and orders.
"""

from datetime import datetime

import pytest
from shopledger import create_app
from shopledger.extensions import db
from shopledger.models import Category, Order, OrderLine, Product
from shopledger.models.auth import ROLE_ADMIN, ROLE_CUSTOMER
from shopledger.services.auth_service import create_user

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user(username="admin", email="admin@shop.test", password=PASSWORD, role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def customer(db_session):
    return create_user(username="alice", email="alice@shop.test", password=PASSWORD, role=ROLE_CUSTOMER)


@pytest.fixture(scope='function')
def other_customer(db_session):
    return create_user(username="bob", email="bob@shop.test", password=PASSWORD, role=ROLE_CUSTOMER)


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Coffee")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def make_product(db_session, category):
    """Factory: make_product(stock=10, price=25.0)."""
    def _make(stock: int = 10, price: float = 25.0, name: str = "Espresso beans"):
        product = Product(
            name_en=name,
            name_vi=f"{name} (vi)",
            category_id=category.id,
            price=price,
            stock_quantity=stock,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_order(db_session):
    """Factory for orders inserted directly, bypassing stock reservation."""
    def _make(user, product, *, total_price: float = 100.0, status: str = "processing",
              order_date: datetime | None = None, quantity: int = 1):
        order = Order(
            user_id=user.id,
            payment_method="cash",
            status=status,
            total_price=total_price,
        )
        if order_date is not None:
            order.order_date = order_date
        order.lines = [OrderLine(position=0, product_id=product.id, quantity=quantity)]
        db_session.add(order)
        db_session.commit()
        return order
    return _make


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def customer_headers(client, customer):
    return auth_headers(get_auth_token(client, customer.username))


@pytest.fixture(scope='function')
def other_customer_headers(client, other_customer):
    return auth_headers(get_auth_token(client, other_customer.username))

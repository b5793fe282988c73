"""
Pytest fixtures for BuildMart backend tests.

Provides an in-memory database wiped per test, one user per role (plus a
second seller and a second client for ownership checks), products, and
bearer-token headers for the test client.
"""

from decimal import Decimal

import pytest

from buildmart import create_app
from buildmart.config import TestConfig
from buildmart.extensions import db
from buildmart.models import Product
from buildmart.services.auth_service import create_user
from buildmart.services.permission_service import Principal
from buildmart.services.session_service import create_session

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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


def _make_user(username: str, role: str, **kwargs):
    return create_user(
        username=username,
        email=f"{username}@buildmart.test",
        password=PASSWORD,
        role=role,
        **kwargs,
    )


@pytest.fixture(scope='function')
def buyer(db_session):
    return _make_user("buyer", "buyer")


@pytest.fixture(scope='function')
def seller(db_session):
    return _make_user("seller_a", "seller", business_name="Acme Supply")


@pytest.fixture(scope='function')
def seller_b(db_session):
    return _make_user("seller_b", "seller", business_name="Beta Build")


@pytest.fixture(scope='function')
def client_user(db_session):
    """A 'client' role account (project owner); not the Flask test client."""
    return _make_user("client_a", "client")


@pytest.fixture(scope='function')
def client_user_b(db_session):
    return _make_user("client_b", "client")


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user("admin", "admin")


def principal_for(user) -> Principal:
    return Principal(id=user.id, role=user.role)


def make_product(seller, *, name="Cement 50kg", price="15.00", stock=100,
                 category="cement", is_active=True, description="Portland cement"):
    product = Product(
        name=name,
        description=description,
        price=Decimal(price),
        stock=stock,
        category=category,
        seller_id=seller.id,
        is_active=is_active,
    )
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def cement(seller):
    return make_product(seller, name="Cement 50kg", price="15.00", stock=100, category="cement")


@pytest.fixture(scope='function')
def rebar(seller):
    return make_product(seller, name="Rebar 12mm", price="7.50", stock=40, category="steel")


def token_for(user) -> str:
    _session, token = create_session(user_id=user.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


@pytest.fixture(scope='function')
def buyer_headers(buyer):
    return auth_headers(token_for(buyer))


@pytest.fixture(scope='function')
def seller_headers(seller):
    return auth_headers(token_for(seller))


@pytest.fixture(scope='function')
def seller_b_headers(seller_b):
    return auth_headers(token_for(seller_b))


@pytest.fixture(scope='function')
def client_headers(client_user):
    return auth_headers(token_for(client_user))


@pytest.fixture(scope='function')
def client_b_headers(client_user_b):
    return auth_headers(token_for(client_user_b))


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(token_for(admin))

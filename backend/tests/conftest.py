"""
Pytest fixtures for grocer backend tests.

Provides an in-memory database, two independent owners (tenant isolation),
products, bearer-token headers, and the Flask test client.
"""

import pytest
from grocer import create_app
from grocer.extensions import db
from grocer.models import User
from grocer.services import products_service
from grocer.services.auth_service import hash_password


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET_KEY': 'test-secret-key',
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
def guard(app):
    return app.extensions["identity_guard"]


def _make_user(db_session, email, name):
    user = User(
        email=email,
        name=name,
        # Low cost factor keeps the suite fast; verification is cost-agnostic
        password_hash=hash_password(TEST_PASSWORD, rounds=4),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def user_a(db_session):
    """Create owner A (first tenant)."""
    return _make_user(db_session, "owner_a@corner.shop", "Corner Shop")


@pytest.fixture(scope='function')
def user_b(db_session):
    """Create owner B (second tenant)."""
    return _make_user(db_session, "owner_b@market.shop", "Market Stall")


def product_payload(**overrides) -> dict:
    """Minimal valid product body."""
    payload = {
        "name": "Milk",
        "sku": "DAI001",
        "category": "Dairy",
        "supplier": "Dairy Fresh",
        "price_cents": 6000,
        "cost_cents": 4500,
        "quantity": 15,
        "reorder_level": 8,
    }
    payload.update(overrides)
    return payload


@pytest.fixture(scope='function')
def product_a(db_session, user_a):
    """Owner A's product: 5 on hand, reorder at 10 (low stock)."""
    return products_service.create_product(
        user_a.id,
        product_payload(name="Bread", sku="BAK001", category="Bakery", quantity=5, reorder_level=10),
    )


@pytest.fixture(scope='function')
def product_b(db_session, user_b):
    """Owner B's product."""
    return products_service.create_product(
        user_b.id,
        product_payload(name="Eggs", sku="DAI002", quantity=30, reorder_level=5),
    )


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_a(guard, user_a):
    return auth_headers(guard.issue_token(user_a))


@pytest.fixture(scope='function')
def headers_b(guard, user_b):
    return auth_headers(guard.issue_token(user_b))

"""
Pytest fixtures for shopdesk backend tests.

Provides test database setup, shop account fixtures, and test client.
"""

import pytest
from shopdesk import create_app
from shopdesk.extensions import db
from shopdesk.models import StockItem
from shopdesk.services.auth_service import register_shop
from shopdesk.services.session_service import create_session


TEST_PASSWORD = "Password123!"
BRIDGE_SECRET = "test-bridge-secret"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'OAUTH_BRIDGE_SECRET': BRIDGE_SECRET,
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
def shop(db_session):
    """Active shop account (UTC)."""
    return register_shop("owner@corner.test", TEST_PASSWORD, {
        "shop_name": "Corner Store",
        "address": "1 Main Street",
        "phone_numbers": ["555-0100"],
    })


@pytest.fixture(scope='function')
def other_shop(db_session):
    """Second tenant, for isolation checks."""
    return register_shop("owner@other.test", TEST_PASSWORD, {"shop_name": "Other Store"})


@pytest.fixture(scope='function')
def token(shop):
    _, plaintext = create_session(shop.id)
    return plaintext


@pytest.fixture(scope='function')
def headers(token):
    return auth_headers(token)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def add_stock(db_session):
    """Factory fixture that seeds one stock item."""
    def _add(shop_id: int, name: str, quantity: float, unit: str = "units", **extra) -> StockItem:
        item = StockItem(
            shop_id=shop_id,
            name=name,
            quantity=quantity,
            quantity_unit=unit,
            price_cents=extra.pop("price_cents", 100),
            cost_price_cents=extra.pop("cost_price_cents", 60),
            **extra,
        )
        db_session.add(item)
        db_session.commit()
        return item
    return _add

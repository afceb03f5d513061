"""
Pytest fixtures for the shop ledger backend tests.

Provides an in-memory database, a clean slate per test, and the usual
owner / shop / product / customer / supplier fixtures.
"""

import pytest

from shopledger import create_app
from shopledger.extensions import db
from shopledger.models import Customer, Product, Supplier
from shopledger.services import shop_service
from shopledger.services.auth_service import create_user
from shopledger.services.session_service import create_session


TEST_PASSWORD = "Password123"


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
def owner(db_session):
    return create_user(first_name="Asha", last_name="Rai", email="asha@example.com", password=TEST_PASSWORD)


@pytest.fixture(scope='function')
def other_user(db_session):
    return create_user(first_name="Bikash", email="bikash@example.com", password=TEST_PASSWORD)


@pytest.fixture(scope='function')
def shop(db_session, owner):
    return shop_service.create_shop(owner.id, {"name": "Rai General Store", "address": "Main Road"})


@pytest.fixture(scope='function')
def other_shop(db_session, other_user):
    return shop_service.create_shop(other_user.id, {"name": "Other Store"})


@pytest.fixture(scope='function')
def product(db_session, shop):
    """Rs. 150.00 selling price, Rs. 100.00 cost, 10 units in stock."""
    product = Product(
        shop_id=shop.id,
        name="Basmati Rice 1kg",
        purchase_price_cents=10000,
        selling_price_cents=15000,
        quantity=10,
        reorder_level=3,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def second_product(db_session, shop):
    product = Product(
        shop_id=shop.id,
        name="Mustard Oil 1L",
        purchase_price_cents=20000,
        selling_price_cents=25000,
        quantity=20,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def customer(db_session, shop):
    customer = Customer(shop_id=shop.id, name="Hari Thapa", phone="9800000001")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def supplier(db_session, shop):
    supplier = Supplier(shop_id=shop.id, name="Valley Wholesale", phone="9800000099")
    db_session.add(supplier)
    db_session.commit()
    return supplier


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(db_session, owner):
    _, token = create_session(owner.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def other_headers(db_session, other_user):
    _, token = create_session(other_user.id)
    return auth_headers(token)

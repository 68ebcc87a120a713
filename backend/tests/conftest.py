"""
Pytest fixtures for POS ledger backend tests.

Provides test database setup, owner/staff fixtures, a catalog, a fake token
verifier and a test client.
"""

import pytest

from posledger import create_app
from posledger.extensions import db
from posledger.models import Employee, Product, Stock, User
from posledger.models.tenancy import ROLE_MANAGER, ROLE_STAFF
from posledger.services import stock_service


class FakeTokenVerifier:
    """Stands in for the real token layer: token -> claims dict."""

    def __init__(self):
        self.tokens = {}

    def issue(self, user) -> str:
        token = f"token-{user.id}"
        self.tokens[token] = {
            "id": user.id,
            "email": user.email,
            "role": user.role,
            "name": user.name,
        }
        return token

    def __call__(self, token):
        return self.tokens.get(token)


_verifier = FakeTokenVerifier()


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'MEMBERSHIP_FREE_QUOTA_MONTHLY': 1000,
        'SALE_TRANSACTION_DEADLINE_SECONDS': 0,
        'SYNC_STOCKS_ON_STARTUP': False,
        'TOKEN_VERIFIER': _verifier,
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
def verifier():
    return _verifier


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        _verifier.tokens.clear()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def owner(db_session):
    """Manager account; owns its own ledgers."""
    user = User(name="Owner A", email="owner_a@salon.test", role=ROLE_MANAGER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def other_owner(db_session):
    """Second, unrelated owner."""
    user = User(name="Owner B", email="owner_b@salon.test", role=ROLE_MANAGER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def staff(db_session, owner):
    """Staff login employed by `owner`."""
    user = User(name="Staff A", email="staff_a@salon.test", role=ROLE_STAFF)
    db_session.add(user)
    db_session.add(Employee(
        manager_id=owner.id,
        name="Staff A",
        email="Staff_A@salon.test",
        role="cashier",
    ))
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def tracked_product(db_session, owner):
    """Stock-tracked product with an opening quantity of 5."""
    product = Product(
        owner_id=owner.id,
        name="Shampoo",
        category="Care",
        price=25000,
        track_stock=True,
        stock=5,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def service_product(db_session, owner):
    """Untracked product (a service); never gets a stock row."""
    product = Product(
        owner_id=owner.id,
        name="Haircut",
        category="Service",
        price=50000,
        track_stock=False,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def stock(db_session, owner, tracked_product):
    """Stock row for `tracked_product`, created by the catalog sync."""
    stock_service.sync_from_products(owner.id)
    return db_session.query(Stock).filter_by(product_id=tracked_product.id).one()


@pytest.fixture(scope='function')
def auth(verifier):
    """auth(user) -> Authorization headers carrying a fresh token for `user`."""
    def _headers(user) -> dict:
        return {'Authorization': f'Bearer {verifier.issue(user)}'}
    return _headers

"""
Pytest fixtures for the POS ledger backend tests.

Provides an in-memory database, a test client, product factories and a
clock fixture for pinning sale timestamps.
"""

from datetime import datetime

import pytest

from pos_ledger import create_app
from pos_ledger.extensions import db
from pos_ledger.services import products_service, sales_service, refund_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'DEBUG',
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
def cost_basis(app):
    """Switch REVENUE_COST_BASIS for one test and restore it afterwards."""
    original = app.config['REVENUE_COST_BASIS']

    def _set(value: str):
        app.config['REVENUE_COST_BASIS'] = value

    yield _set
    app.config['REVENUE_COST_BASIS'] = original


@pytest.fixture(scope='function')
def clock(monkeypatch):
    """
    Pin the time used by checkout and refunds.

    Usage: clock("2025-04-05T23:30:00") before create_sale/refund_sale.
    """
    def _set(iso: str):
        fixed = datetime.fromisoformat(iso)
        monkeypatch.setattr(sales_service, "utcnow", lambda: fixed)
        monkeypatch.setattr(refund_service, "utcnow", lambda: fixed)
        return fixed

    return _set


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory for products created through the inventory service."""
    def _make(name="Widget", variant=None, cost_price_cents=400, price_cents=1000, quantity=5):
        return products_service.add_product({
            "name": name,
            "variant": variant,
            "cost_price_cents": cost_price_cents,
            "price_cents": price_cents,
            "quantity": quantity,
        })

    return _make


@pytest.fixture(scope='function')
def widget(make_product):
    """Widget: price 10.00, cost 4.00, quantity 5."""
    return make_product()

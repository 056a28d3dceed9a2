"""
Pytest fixtures for stockledger tests.

Provides an in-memory application, a per-test clean database and a test client.
"""

import pytest

from stockledger import create_app
from stockledger.extensions import db
from stockledger.services import ledger_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'MOVEMENT_RETRY_BACKOFF': 0,
        'SYNC_MAX_EVENTS': 20,
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


@pytest.fixture
def receive(db_session):
    """Seed stock through the ledger: receive(store, product, qty)."""
    def _receive(store_id, product_id, quantity, unit_cost_minor=100):
        return ledger_service.apply_movement(
            store_id=store_id,
            product_id=product_id,
            movement_type="RECEIVE",
            quantity=quantity,
            unit_cost_minor=unit_cost_minor,
            reference_type="SEED",
        )
    return _receive

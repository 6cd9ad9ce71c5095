"""
Pytest configuration and shared fixtures for stock ledger tests.
"""
import os
import tempfile
from decimal import Decimal
from itertools import count

import pytest

from stockledger import create_app
from stockledger.extensions import db
from stockledger.models import Product, ProductVariant
from stockledger.services.inventory_ledger import get_ledger


@pytest.fixture(scope='function')
def app():
    """Create and configure a new app instance for each test."""
    # Create a temporary file to use as the database
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f'sqlite:///{db_path}',
        'RATELIMIT_ENABLED': False,
        'LEDGER_LOCK_TIMEOUT_SECONDS': 5.0,
    })

    with app.app_context():
        db.create_all()

    yield app

    # Clean up database
    with app.app_context():
        db.drop_all()
        db.engine.dispose()

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def db_session(app):
    """Database session inside an application context."""
    with app.app_context():
        yield db.session
        db.session.rollback()


@pytest.fixture
def app_context(app):
    """Provide an application context for tests that need it."""
    with app.app_context():
        yield


@pytest.fixture
def ledger(db_session):
    return get_ledger()


@pytest.fixture
def make_variant(db_session):
    """Factory for a committed product with one variant."""
    sequence = count(1)

    def _make(product_name='Lavender Soap', sku=None, product=None):
        n = next(sequence)
        if product is None:
            product = Product(name=product_name)
            db_session.add(product)
            db_session.flush()
        variant = ProductVariant(
            product_id=product.id,
            sku=sku or f'SKU-{n:04d}',
            name=f'{product.name} #{n}',
        )
        db_session.add(variant)
        db_session.commit()
        return variant

    return _make


@pytest.fixture
def variant(make_variant):
    return make_variant()


@pytest.fixture
def stocked_variant(ledger, variant):
    """Variant with two lots: 5 @ 10.00 received before 5 @ 20.00."""
    ledger.receive(variant.id, 5, Decimal('10.00'), note='first lot')
    ledger.receive(variant.id, 5, Decimal('20.00'), note='second lot')
    return variant

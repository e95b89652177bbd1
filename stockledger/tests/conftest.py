"""
Pytest fixtures for Stockledger tests.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache

from stockledger import stock
from stockledger.adapters import reset_sku_validator
from stockledger.models import Location, LocationKind


User = get_user_model()


@pytest.fixture(autouse=True)
def _isolation():
    """Fresh validator and empty cache for every test."""
    reset_sku_validator()
    cache.clear()
    yield
    reset_sku_validator()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='testuser',
        password='testpass123'
    )


@pytest.fixture
def loja(db):
    """Get or create the store location."""
    location, _ = Location.objects.get_or_create(
        code='loja',
        defaults={
            'name': 'Loja',
            'kind': LocationKind.PHYSICAL,
            'is_default': True,
        }
    )
    return location


@pytest.fixture
def deposito(db):
    """Get or create the back-room location."""
    location, _ = Location.objects.get_or_create(
        code='deposito',
        defaults={
            'name': 'Depósito',
            'kind': LocationKind.PHYSICAL,
        }
    )
    return location


@pytest.fixture
def sku():
    return 'CAFE-500G'


@pytest.fixture
def stocked(sku, loja):
    """100 units received @ 2.00, then 30 sold: 70 on hand at the store."""
    stock.receive_stock(sku, loja, 100, Decimal('2.00'), lot_number='L-100')
    stock.apply_movement(sku, loja, -30, 'sale', 'venda:1')
    return stock.get_balance(sku, loja)


@pytest.fixture
def today():
    """Return today's date."""
    return date.today()


@pytest.fixture
def tomorrow():
    """Return tomorrow's date."""
    return date.today() + timedelta(days=1)

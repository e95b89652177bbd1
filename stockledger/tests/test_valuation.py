"""
Tests for FIFO and weighted-average valuation, and inventory turnover.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from stockledger import stock
from stockledger.exceptions import UnknownCostingMethod
from stockledger.models import CostingMethod, Movement, ReasonCode


pytestmark = pytest.mark.django_db


class TestFifo:

    def test_receipt_and_sale(self, sku, loja, stocked):
        """RECEIPT 100 @ 2.00, SALE 30 → FIFO value 140.00."""
        valuation = stock.value_inventory(sku, loja, 'FIFO')

        assert valuation.quantity == 70
        assert valuation.total_value == Decimal('140.00')
        assert valuation.unit_value == Decimal('2.0000')
        assert valuation.uncosted_quantity == 0

    def test_oldest_layers_consumed_first(self, sku, loja):
        stock.receive_stock(sku, loja, 10, Decimal('1.00'), lot_number='L1')
        stock.receive_stock(sku, loja, 10, Decimal('3.00'), lot_number='L2')
        stock.apply_movement(sku, loja, -15, ReasonCode.SALE)

        valuation = stock.value_inventory(sku, loja, CostingMethod.FIFO)

        assert valuation.quantity == 5
        assert valuation.total_value == Decimal('15.00')

    def test_deterministic(self, sku, loja):
        stock.receive_stock(sku, loja, 7, Decimal('1.10'), lot_number='A')
        stock.receive_stock(sku, loja, 7, Decimal('1.30'), lot_number='B')
        stock.apply_movement(sku, loja, -9, ReasonCode.SALE)

        results = {stock.value_inventory(sku, loja, 'FIFO') for _ in range(3)}

        assert len(results) == 1

    def test_uncosted_stock(self, sku, loja):
        stock.receive_stock(sku, loja, 4, Decimal('2.50'))
        stock.apply_movement(sku, loja, 6, ReasonCode.ADJUSTMENT, notes='Achado no estoque')

        valuation = stock.value_inventory(sku, loja, 'FIFO')

        assert valuation.quantity == 10
        assert valuation.total_value == Decimal('10.00')
        assert valuation.uncosted_quantity == 6
        assert valuation.unit_value == Decimal('2.5000')

    def test_rounding(self, sku, loja):
        stock.receive_stock(sku, loja, 3, Decimal('0.3335'))

        assert stock.value_inventory(sku, loja).total_value == Decimal('1.00')


class TestWeightedAverage:

    def test_blends_receipts(self, sku, loja):
        stock.receive_stock(sku, loja, 10, Decimal('1.00'), lot_number='L1')
        stock.receive_stock(sku, loja, 30, Decimal('3.00'), lot_number='L2')
        stock.apply_movement(sku, loja, -20, ReasonCode.SALE)

        valuation = stock.value_inventory(sku, loja, 'WEIGHTED_AVERAGE')

        assert valuation.quantity == 20
        assert valuation.unit_value == Decimal('2.5000')
        assert valuation.total_value == Decimal('50.00')

    def test_cache_matches_log(self, sku, loja):
        stock.receive_stock(sku, loja, 3, Decimal('1.10'))
        stock.receive_stock(sku, loja, 7, Decimal('2.35'))
        stock.apply_movement(sku, loja, -4, ReasonCode.SALE)
        stock.receive_stock(sku, loja, 11, Decimal('0.99'))

        cached = stock.weighted_average_cost(sku, loja)
        from_log = stock.weighted_average_cost(sku, loja, from_log=True)

        assert cached == from_log
        assert cached == Decimal('1.4590')

    def test_no_receipts(self, sku, loja):
        stock.apply_movement(sku, loja, 5, ReasonCode.ADJUSTMENT)

        valuation = stock.value_inventory(sku, loja, 'WEIGHTED_AVERAGE')

        assert valuation.total_value == Decimal('0.00')
        assert valuation.uncosted_quantity == 5


class TestEdgeCases:

    def test_unknown_method(self, sku, loja, stocked):
        with pytest.raises(UnknownCostingMethod) as exc:
            stock.value_inventory(sku, loja, 'LIFO')

        assert exc.value.code == 'UNKNOWN_COSTING_METHOD'

    def test_no_balance(self, sku, loja):
        valuation = stock.value_inventory(sku, loja, 'FIFO')

        assert valuation.quantity == 0
        assert valuation.total_value == Decimal('0')
        assert valuation.uncosted_quantity == 0

    def test_value_location(self, sku, loja, stocked):
        stock.receive_stock('ACUCAR-1KG', loja, 10, Decimal('4.00'))

        valuation = stock.value_location(loja)

        assert valuation.quantity == 80
        assert valuation.total_value == Decimal('180.00')

    def test_as_dict(self, sku, loja, stocked):
        data = stock.value_inventory(sku, loja).as_dict()

        assert data == {
            'method': 'FIFO',
            'quantity': 70,
            'total_value': '140.00',
            'unit_value': '2.0000',
            'uncosted_quantity': 0,
        }


class TestTurnover:

    @pytest.fixture
    def end(self):
        return timezone.now()

    @pytest.fixture
    def history(self, sku, loja, end):
        """100 received 40 days before end, 30 sold 15 days before end."""
        received = stock.receive_stock(sku, loja, 100, Decimal('2.00'))
        sold = stock.apply_movement(sku, loja, -30, ReasonCode.SALE)
        Movement.objects.filter(pk=received.pk).update(created_at=end - timedelta(days=40))
        Movement.objects.filter(pk=sold.pk).update(created_at=end - timedelta(days=15))

    def test_sales_over_average_on_hand(self, sku, loja, end, history):
        """100 on hand for 15 days, 70 for 15 → average 85, turnover 30/85."""
        result = stock.inventory_turnover(sku, loja, 'month', end=end)

        assert result.units_sold == 30
        assert result.average_on_hand == Decimal('85.0000')
        assert result.turnover == Decimal('0.3529')
        assert result.start == end - timedelta(days=30)

    def test_year_counts_time_before_first_receipt(self, sku, loja, end, history):
        result = stock.inventory_turnover(sku, loja, 'year', end=end)

        # (100 × 25 days + 70 × 15 days) / 365 days
        assert result.average_on_hand == Decimal('9.7260')
        assert result.turnover == Decimal('3.0845')

    def test_sales_outside_period_ignored(self, sku, loja, end, history):
        result = stock.inventory_turnover(sku, loja, 'month', end=end - timedelta(days=16))

        assert result.units_sold == 0
        assert result.turnover == Decimal('0.0000')
        assert result.average_on_hand == Decimal('80.0000')

    def test_nothing_on_hand(self, sku, loja, end):
        result = stock.inventory_turnover(sku, loja, 'quarter', end=end)

        assert result.units_sold == 0
        assert result.average_on_hand == Decimal('0.0000')
        assert result.turnover == Decimal('0.0000')

    def test_unknown_period(self, sku, loja):
        with pytest.raises(ValueError):
            stock.inventory_turnover(sku, loja, 'week')

    def test_as_dict(self, sku, loja, end, history):
        data = stock.inventory_turnover(sku, loja, end=end).as_dict()

        assert data['period'] == 'month'
        assert data['units_sold'] == 30
        assert data['turnover'] == '0.3529'
        assert data['end'] == end.isoformat()

"""
Tests for physical count sessions.
"""

from decimal import Decimal

import pytest

from stockledger import stock, StockError
from stockledger.models import Movement, ReasonCode, StockCount


pytestmark = pytest.mark.django_db


class TestRecordCount:

    def test_corrections_for_differences(self, sku, loja, user, stocked):
        stock.receive_stock('ACUCAR-1KG', loja, 5, Decimal('4.00'))

        count = stock.record_count(loja, [
            {'sku': sku, 'counted': 68, 'notes': 'Embalagem violada'},
            {'sku': 'ACUCAR-1KG', 'counted': 5},
            {'sku': 'SAL-1KG', 'counted': 3},
        ], reference='inventario-mensal', user=user)

        lines = {line.sku: line for line in count.lines.all()}
        assert lines[sku].system_quantity == 70
        assert lines[sku].difference == -2
        assert lines[sku].movement.delta == -2
        assert lines[sku].movement.notes == 'Embalagem violada'
        assert lines['ACUCAR-1KG'].difference == 0
        assert lines['ACUCAR-1KG'].movement is None
        assert lines['SAL-1KG'].system_quantity == 0
        assert lines['SAL-1KG'].movement.delta == 3

        corrections = Movement.objects.filter(reason_code=ReasonCode.COUNT_CORRECTION)
        assert corrections.count() == 2
        assert set(corrections.values_list('reference_id', flat=True)) == {f'count:{count.pk}'}
        assert stock.get_balance(sku, loja).quantity_on_hand == 68
        assert stock.get_balance('SAL-1KG', loja).quantity_on_hand == 3

    def test_count_may_go_below_reserved(self, sku, loja, stocked):
        stock.reserve(sku, loja, 60)

        stock.record_count(loja, [{'sku': sku, 'counted': 10}])

        balance = stock.get_balance(sku, loja)
        assert balance.quantity_on_hand == 10
        assert balance.quantity_reserved == 10

    def test_count_to_zero(self, sku, loja, stocked):
        stock.record_count(loja, [{'sku': sku, 'counted': 0}])

        assert stock.get_balance(sku, loja).quantity_on_hand == 0

    @pytest.mark.parametrize('counted', [-1, 2.5])
    def test_invalid_count(self, sku, loja, stocked, counted):
        with pytest.raises(StockError) as exc:
            stock.record_count(loja, [{'sku': sku, 'counted': counted}])

        assert exc.value.code == 'INVALID_QUANTITY'
        assert StockCount.objects.count() == 0
        assert stock.get_balance(sku, loja).quantity_on_hand == 70

    def test_repeated_sku(self, sku, loja, stocked):
        with pytest.raises(StockError):
            stock.record_count(loja, [
                {'sku': sku, 'counted': 1},
                {'sku': sku, 'counted': 2},
            ])

        assert StockCount.objects.count() == 0

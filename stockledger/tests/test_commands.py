"""
Tests for management commands, ledger audit, catalog validation and admin.
"""

from datetime import timedelta
from decimal import Decimal
from io import StringIO

import pytest
from django.contrib import admin
from django.core.exceptions import ImproperlyConfigured
from django.core.management import CommandError, call_command
from django.db.models import F

from stockledger import stock, StockError
from stockledger.adapters import get_sku_validator, validate_input_skus
from stockledger.adapters.noop import NoopSkuValidator
from stockledger.models import (
    Lot,
    LotStatus,
    Movement,
    ReasonCode,
    StockBalance,
    TransferOrder,
    TransferStatus,
)
from stockledger.protocols import SkuValidationResult, SkuValidator


pytestmark = pytest.mark.django_db


class InactiveSkuValidator(NoopSkuValidator):
    """Catalog where every SKU starting with 'OLD-' is discontinued."""

    def validate_sku(self, sku):
        if sku.startswith('OLD-'):
            return SkuValidationResult(valid=True, sku=sku, is_active=False, error_code='inactive')
        return super().validate_sku(sku)


class TestQueries:

    def test_get_stock_movements_newest_first(self, sku, loja, stocked):
        stock.apply_movement(sku, loja, 2, ReasonCode.RETURN, 'devolucao:1')

        history = list(stock.get_stock_movements(sku, loja))

        assert [m.reason_code for m in history] == ['return', 'sale', 'receipt']

    def test_get_stock_movements_date_range(self, sku, loja, stocked):
        old = Movement.objects.get(reason_code=ReasonCode.RECEIPT)
        Movement.objects.filter(pk=old.pk).update(created_at=old.created_at - timedelta(days=10))

        recent = stock.get_stock_movements(sku, loja, start=old.created_at - timedelta(days=1))

        assert [m.reason_code for m in recent] == ['sale']

    def test_list_balances(self, sku, loja, deposito, stocked):
        stock.receive_stock('ACUCAR-1KG', deposito, 5, Decimal('4.00'))
        StockBalance.objects.create(sku='SAL-1KG', location=loja)

        assert stock.list_balances(loja).count() == 2
        assert stock.list_balances(loja, in_stock=True).count() == 1
        assert [b.location.code for b in stock.list_balances(sku=sku)] == ['loja']

    def test_on_hand_and_available(self, sku, loja, deposito, stocked):
        stock.receive_stock(sku, deposito, 5, Decimal('2.00'))
        stock.reserve(sku, loja, 10)

        assert stock.on_hand(sku) == 75
        assert stock.on_hand(sku, loja) == 70
        assert stock.available(sku) == 65


class TestVerifyLedger:

    def test_clean_ledger(self, stocked):
        assert stock.verify_ledger() == []

    def test_detects_and_fixes_drift(self, sku, loja, stocked):
        StockBalance.objects.filter(pk=stocked.pk).update(quantity_on_hand=F('quantity_on_hand') + 5)

        drifted = stock.verify_ledger()
        assert [(b.pk, total) for b, total in drifted] == [(stocked.pk, 70)]
        assert stock.get_balance(sku, loja).quantity_on_hand == 75

        stock.verify_ledger(fix=True)
        assert stock.get_balance(sku, loja).quantity_on_hand == 70

    def test_command(self, stocked):
        StockBalance.objects.filter(pk=stocked.pk).update(quantity_on_hand=F('quantity_on_hand') + 5)
        out = StringIO()

        call_command('verify_ledger', stdout=out)
        assert '1 saldo(s) divergente(s)' in out.getvalue()

        call_command('verify_ledger', '--fix', stdout=out)
        assert '1 saldo(s) corrigido(s)' in out.getvalue()

        out = StringIO()
        call_command('verify_ledger', stdout=out)
        assert 'Nenhuma divergência' in out.getvalue()


class TestExpireLotsCommand:

    def test_dry_run_and_run(self, sku, today):
        lot = stock.create_lot(sku, 'PAST', 5, Decimal('1.00'), expiry_date=today - timedelta(days=1))
        out = StringIO()

        call_command('expire_lots', '--dry-run', stdout=out)
        assert '1 lote(s) seria(m)' in out.getvalue()
        lot.refresh_from_db()
        assert lot.status == LotStatus.ACTIVE

        call_command('expire_lots', stdout=out)
        lot.refresh_from_db()
        assert lot.status == LotStatus.EXPIRED
        assert Lot.objects.filter(status=LotStatus.EXPIRED).count() == 1


class TestRefreshReorderPointsCommand:

    def test_single_location(self, sku, loja):
        stock.receive_stock(sku, loja, 10, Decimal('1.00'))
        stock.apply_movement(sku, loja, -10, ReasonCode.SALE)
        out = StringIO()

        call_command('refresh_reorder_points', '--location', 'loja', stdout=out)

        assert 'loja: 1 recomendação(ões)' in out.getvalue()
        assert stock.cached_recommendations(loja)[0]['sku'] == sku

    def test_unknown_location(self):
        with pytest.raises(CommandError):
            call_command('refresh_reorder_points', '--location', 'nao-existe')


class TestCatalogValidation:

    def test_noop_accepts_everything(self):
        validate_input_skus(['QUALQUER-COISA'])

        assert get_sku_validator().search_skus('cafe') == []

    def test_noop_follows_the_protocol(self):
        validator = NoopSkuValidator()

        assert isinstance(validator, SkuValidator)
        assert validator.validate_skus(['A', 'B'])['B'].valid
        assert validator.get_sku_info('A').cost_price is None

    def test_inactive_sku_rejected(self, loja, settings):
        settings.STOCKLEDGER = {
            'SKU_VALIDATOR': 'stockledger.tests.test_commands.InactiveSkuValidator',
        }

        with pytest.raises(StockError) as exc:
            stock.receive_stock('OLD-CAFE', loja, 5, Decimal('1.00'))

        assert exc.value.code == 'INVALID_SKU'
        assert exc.value.data['reason'] == 'inactive'
        assert not StockBalance.objects.filter(sku='OLD-CAFE').exists()

    def test_validation_can_be_disabled(self, loja, settings):
        settings.STOCKLEDGER = {
            'SKU_VALIDATOR': 'stockledger.tests.test_commands.InactiveSkuValidator',
            'VALIDATE_INPUT_SKUS': False,
        }

        stock.receive_stock('OLD-CAFE', loja, 5, Decimal('1.00'))

        assert stock.on_hand('OLD-CAFE', loja) == 5

    def test_missing_validator(self, loja, settings):
        settings.STOCKLEDGER = {}

        with pytest.raises(ImproperlyConfigured):
            stock.receive_stock('CAFE', loja, 5, Decimal('1.00'))

    def test_error_as_dict(self):
        error = StockError('INVALID_SKU', sku='X', price=Decimal('1.50'))

        assert error.as_dict() == {
            'code': 'INVALID_SKU',
            'message': 'SKU inválido ou inativo',
            'data': {'sku': 'X', 'price': '1.50'},
        }


class TestAdmin:

    @pytest.mark.parametrize('model_name', [
        'Location', 'StockBalance', 'Movement', 'Lot', 'SerialUnit',
        'TransferOrder', 'StockCount', 'ReorderPolicy',
    ])
    def test_registered(self, model_name):
        from stockledger import models

        assert admin.site.is_registered(getattr(models, model_name))

    def test_ledger_is_read_only(self, rf, user):
        from stockledger.admin import MovementAdmin

        request = rf.get('/')
        request.user = user
        model_admin = MovementAdmin(Movement, admin.site)

        assert not model_admin.has_add_permission(request)
        assert not model_admin.has_change_permission(request)
        assert not model_admin.has_delete_permission(request)

    def test_commit_action(self, sku, loja, deposito, stocked, rf, user, monkeypatch):
        from stockledger.admin import TransferOrderAdmin

        order = stock.request_transfer(loja, deposito, [{'sku': sku, 'quantity': 5}])
        request = rf.post('/')
        request.user = user
        model_admin = TransferOrderAdmin(TransferOrder, admin.site)
        messages = []
        monkeypatch.setattr(model_admin, 'message_user', lambda req, msg, *a, **kw: messages.append(str(msg)))

        model_admin.commit_transfers(request, TransferOrder.objects.all())

        order.refresh_from_db()
        assert order.status == TransferStatus.COMMITTED
        assert order.processed_by == user
        assert messages == ['1 transferência(s) efetivada(s).']

"""
Tests for the lot registry and serial tracking.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.db import connection, transaction
from django.test.utils import CaptureQueriesContext

from stockledger import stock, StockError
from stockledger.exceptions import DuplicateSerialError, LotDepletionError
from stockledger.expiry import days_until_expiry, is_expired
from stockledger.models import Lot, LotLocation, LotStatus, ReasonCode, SerialStatus, SerialUnit
from stockledger.services.lots import consume_slices


pytestmark = pytest.mark.django_db


class TestCreateLot:

    def test_create_lot_with_location(self, sku, loja, tomorrow):
        lot = stock.create_lot(sku, 'L-01', 50, Decimal('3.20'), expiry_date=tomorrow, location=loja)

        assert lot.remaining_quantity == 50
        assert lot.status == LotStatus.ACTIVE
        assert lot.slices.get(location=loja).quantity == 50

    def test_create_lot_does_not_touch_ledger(self, sku, loja):
        stock.create_lot(sku, 'L-01', 50, Decimal('3.20'), location=loja)

        assert stock.get_balance(sku, loja) is None

    def test_duplicate_lot_number(self, sku):
        stock.create_lot(sku, 'L-01', 5, Decimal('1.00'))

        with pytest.raises(StockError) as exc:
            stock.create_lot(sku, 'L-01', 5, Decimal('1.00'))

        assert exc.value.code == 'DUPLICATE_LOT'

    def test_same_lot_number_other_sku(self, sku):
        stock.create_lot(sku, 'L-01', 5, Decimal('1.00'))
        stock.create_lot('ACUCAR-1KG', 'L-01', 5, Decimal('1.00'))

        assert Lot.objects.filter(lot_number='L-01').count() == 2

    def test_invalid_quantity(self, sku):
        with pytest.raises(StockError) as exc:
            stock.create_lot(sku, 'L-01', 0, Decimal('1.00'))

        assert exc.value.code == 'INVALID_QUANTITY'


class TestConsumeFromLot:

    def test_consume_at_location(self, sku, loja):
        lot = stock.create_lot(sku, 'L-01', 10, Decimal('1.00'), location=loja)

        lot = stock.consume_from_lot(lot.pk, 4, location=loja)

        assert lot.remaining_quantity == 6
        assert lot.slices.get(location=loja).quantity == 6

    def test_consume_more_than_remaining(self, sku, loja):
        lot = stock.create_lot(sku, 'L-01', 10, Decimal('1.00'), location=loja)

        with pytest.raises(LotDepletionError) as exc:
            stock.consume_from_lot(lot.pk, 11)

        assert exc.value.code == 'LOT_DEPLETED'
        lot.refresh_from_db()
        assert lot.remaining_quantity == 10

    def test_consume_more_than_slice(self, sku, loja, deposito):
        lot = stock.create_lot(sku, 'L-01', 10, Decimal('1.00'), location=loja)

        with pytest.raises(LotDepletionError):
            stock.consume_from_lot(lot.pk, 1, location=deposito)

    def test_consume_all_marks_depleted(self, sku):
        lot = stock.create_lot(sku, 'L-01', 3, Decimal('1.00'))

        lot = stock.consume_from_lot(lot.pk, 3)

        assert lot.remaining_quantity == 0
        assert lot.status == LotStatus.DEPLETED

    def test_consume_without_location_uses_unplaced_first(self, sku, loja):
        lot = stock.create_lot(sku, 'L-01', 10, Decimal('1.00'))
        Lot.objects.filter(pk=lot.pk).update(initial_quantity=15, remaining_quantity=15)
        lot.slices.create(location=loja, quantity=5)

        stock.consume_from_lot(lot.pk, 12)

        lot.refresh_from_db()
        assert lot.remaining_quantity == 3
        assert lot.slices.get(location=loja).quantity == 3

    def test_unknown_lot(self):
        with pytest.raises(StockError) as exc:
            stock.consume_from_lot(999999, 1)

        assert exc.value.code == 'LOT_NOT_FOUND'


class TestLockOrder:
    """Every path locks a lot row before the slices of that lot."""

    @staticmethod
    def first_read(queries, table, *, with_lot_columns=False):
        lot_column = f'"{Lot._meta.db_table}"."unit_cost"'
        for i, query in enumerate(queries):
            sql = query['sql']
            if not sql.startswith('SELECT') or f'FROM "{table}"' not in sql:
                continue
            if with_lot_columns and lot_column not in sql:
                continue
            return i
        raise AssertionError(f"no read from {table}")

    def test_sale_locks_lot_before_slice(self, sku, loja):
        stock.receive_stock(sku, loja, 5, Decimal('1.00'), lot_number='L1')

        with transaction.atomic(), CaptureQueriesContext(connection) as ctx:
            consume_slices(sku, loja, 2)

        lot_read = self.first_read(ctx.captured_queries, Lot._meta.db_table)
        slice_read = self.first_read(
            ctx.captured_queries, LotLocation._meta.db_table, with_lot_columns=True,
        )
        assert lot_read < slice_read

    def test_consume_from_lot_locks_lot_before_slice(self, sku, loja):
        lot = stock.create_lot(sku, 'L1', 5, Decimal('1.00'), location=loja)

        with CaptureQueriesContext(connection) as ctx:
            stock.consume_from_lot(lot.pk, 2)

        lot_read = self.first_read(ctx.captured_queries, Lot._meta.db_table)
        slice_read = self.first_read(ctx.captured_queries, LotLocation._meta.db_table)
        assert lot_read < slice_read
        assert lot.slices.get(location=loja).quantity == 3


class TestExpiry:

    def test_get_expiring_lots(self, sku, today):
        soon = stock.create_lot(sku, 'SOON', 5, Decimal('1.00'), expiry_date=today + timedelta(days=5))
        stock.create_lot(sku, 'LATER', 5, Decimal('1.00'), expiry_date=today + timedelta(days=40))
        past = stock.create_lot(sku, 'PAST', 5, Decimal('1.00'), expiry_date=today - timedelta(days=1))
        stock.create_lot(sku, 'NEVER', 5, Decimal('1.00'))
        empty = stock.create_lot(sku, 'EMPTY', 5, Decimal('1.00'), expiry_date=today)
        stock.consume_from_lot(empty.pk, 5)

        expiring = list(stock.get_expiring_lots(30))

        assert expiring == [past, soon]

    def test_default_threshold(self, sku, today):
        stock.create_lot(sku, 'L-29', 5, Decimal('1.00'), expiry_date=today + timedelta(days=29))
        stock.create_lot(sku, 'L-31', 5, Decimal('1.00'), expiry_date=today + timedelta(days=31))

        assert [lot.lot_number for lot in stock.get_expiring_lots()] == ['L-29']

    def test_expire_lots(self, sku, today):
        past = stock.create_lot(sku, 'PAST', 5, Decimal('1.00'), expiry_date=today - timedelta(days=1))
        sellable = stock.create_lot(sku, 'TODAY', 5, Decimal('1.00'), expiry_date=today)

        assert stock.expire_lots() == 1

        past.refresh_from_db()
        sellable.refresh_from_db()
        assert past.status == LotStatus.EXPIRED
        assert sellable.status == LotStatus.ACTIVE

    def test_expiry_rules(self, sku, today):
        lot = Lot(sku=sku, lot_number='X', expiry_date=today)

        assert not is_expired(lot, today)
        assert is_expired(lot, today + timedelta(days=1))
        assert days_until_expiry(lot, today - timedelta(days=2)) == 2
        assert days_until_expiry(Lot(sku=sku, lot_number='Y'), today) is None


class TestSerials:

    def test_track_serial(self, sku, loja):
        serial = stock.track_serial(sku, 'SN-1', lot_number='L-01', location=loja)

        assert serial.status == SerialStatus.IN_STOCK
        assert serial.events.count() == 1

    def test_duplicate_serial(self, sku):
        stock.track_serial(sku, 'SN-1')

        with pytest.raises(DuplicateSerialError) as exc:
            stock.track_serial(sku, 'SN-1')

        assert exc.value.code == 'DUPLICATE_SERIAL'

    def test_lifecycle(self, sku, loja):
        serial = stock.track_serial(sku, 'SN-1', location=loja)

        serial = stock.update_serial_status(serial.pk, SerialStatus.RESERVED)
        serial = stock.update_serial_status(serial.pk, SerialStatus.SOLD)
        assert serial.location is None

        serial = stock.update_serial_status(serial.pk, SerialStatus.RETURNED, location=loja)
        serial = stock.update_serial_status(serial.pk, SerialStatus.IN_STOCK)

        assert serial.location == loja
        assert list(serial.events.values_list('status', flat=True)) == [
            'in_stock', 'reserved', 'sold', 'returned', 'in_stock',
        ]

    def test_invalid_transition(self, sku):
        serial = stock.track_serial(sku, 'SN-1')
        stock.update_serial_status(serial.pk, SerialStatus.SOLD)

        with pytest.raises(StockError) as exc:
            stock.update_serial_status(serial.pk, SerialStatus.IN_STOCK)

        assert exc.value.code == 'INVALID_STATUS'

    def test_placed_serial_cannot_change_location(self, sku, loja, deposito):
        serial = stock.track_serial(sku, 'SN-1', location=loja)

        with pytest.raises(StockError) as exc:
            stock.update_serial_status(serial.pk, SerialStatus.RESERVED, location=deposito)

        assert exc.value.code == 'INVALID_STATUS'
        serial.refresh_from_db()
        assert serial.location == loja
        assert serial.status == SerialStatus.IN_STOCK

    def test_returned_serial_can_come_back_elsewhere(self, sku, loja, deposito):
        serial = stock.track_serial(sku, 'SN-1', location=loja)
        stock.update_serial_status(serial.pk, SerialStatus.SOLD)

        serial = stock.update_serial_status(serial.pk, SerialStatus.RETURNED, location=deposito)

        assert serial.location == deposito

    def test_receive_with_serials(self, sku, loja):
        stock.receive_stock(sku, loja, 2, Decimal('900.00'), lot_number='NB-1',
                            serial_numbers=['SN-1', 'SN-2'])

        serials = SerialUnit.objects.filter(sku=sku)
        assert serials.count() == 2
        assert {s.lot_number for s in serials} == {'NB-1'}
        assert {s.location_id for s in serials} == {loja.pk}

    def test_sale_and_return_with_serial(self, sku, loja):
        stock.receive_stock(sku, loja, 2, Decimal('900.00'), serial_numbers=['SN-1', 'SN-2'])

        stock.apply_movement(sku, loja, -1, ReasonCode.SALE, 'venda:1', serial_numbers=['SN-1'])
        serial = SerialUnit.objects.get(serial_number='SN-1')
        assert serial.status == SerialStatus.SOLD
        assert serial.location is None

        stock.apply_movement(sku, loja, 1, ReasonCode.RETURN, 'devolucao:1', serial_numbers=['SN-1'])
        serial.refresh_from_db()
        assert serial.status == SerialStatus.RETURNED
        assert serial.location == loja

    def test_sell_serial_twice(self, sku, loja):
        stock.receive_stock(sku, loja, 2, Decimal('900.00'), serial_numbers=['SN-1', 'SN-2'])
        stock.apply_movement(sku, loja, -1, ReasonCode.SALE, serial_numbers=['SN-1'])

        with pytest.raises(StockError) as exc:
            stock.apply_movement(sku, loja, -1, ReasonCode.SALE, serial_numbers=['SN-1'])

        assert exc.value.code == 'INVALID_STATUS'
        assert stock.get_balance(sku, loja).quantity_on_hand == 1

    def test_more_serials_than_units(self, sku, loja):
        stock.receive_stock(sku, loja, 2, Decimal('900.00'), serial_numbers=['SN-1', 'SN-2'])

        with pytest.raises(StockError) as exc:
            stock.apply_movement(sku, loja, -1, ReasonCode.SALE, serial_numbers=['SN-1', 'SN-2'])

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_unknown_serial(self, sku, loja):
        stock.receive_stock(sku, loja, 2, Decimal('900.00'))

        with pytest.raises(StockError) as exc:
            stock.apply_movement(sku, loja, -1, ReasonCode.SALE, serial_numbers=['SN-9'])

        assert exc.value.code == 'SERIAL_NOT_FOUND'
        assert stock.get_balance(sku, loja).quantity_on_hand == 2

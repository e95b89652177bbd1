"""
Lot registry — batches, lot slices and serial units.

Lot slices (LotLocation) are the FIFO cost layers: the movement path
draws from them, the transfer path moves them, valuation walks them.
The module-level helpers run inside the caller's transaction.
"""

import logging
import uuid
from collections import defaultdict

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from stockledger.conf import stockledger_settings
from stockledger.exceptions import DuplicateSerialError, LotDepletionError, StockError
from stockledger.expiry import filter_expired_lots, filter_expiring_lots
from stockledger.models.enums import SERIAL_TRANSITIONS, LotStatus, SerialStatus
from stockledger.models.lot import Lot, LotLocation
from stockledger.models.serial import SerialEvent, SerialUnit

logger = logging.getLogger('stockledger')


# ══════════════════════════════════════════════════════════════
# SLICES
# ══════════════════════════════════════════════════════════════

def _credit_slice(lot, location, quantity: int) -> None:
    slice_, _ = LotLocation.objects.get_or_create(lot=lot, location=location)
    LotLocation.objects.filter(pk=slice_.pk).update(
        quantity=F('quantity') + quantity,
        updated_at=timezone.now(),
    )


def _debit_lot(lot_id: int, quantity: int) -> None:
    Lot.objects.filter(pk=lot_id).update(remaining_quantity=F('remaining_quantity') - quantity)
    Lot.objects.filter(
        pk=lot_id, remaining_quantity=0, status=LotStatus.ACTIVE
    ).update(status=LotStatus.DEPLETED)


def _locked_slices(sku: str, location, lot_numbers=None) -> list[LotLocation]:
    """
    Lock the lots held at a location, then their slices there.

    Lots are always locked before their slices (by pk), the same order
    receive_into_lot(), recredit_lot() and consume_from_lot() use.
    """
    held = LotLocation.objects.filter(lot__sku=sku, location=location, quantity__gt=0)
    if lot_numbers:
        held = held.filter(lot__lot_number__in=lot_numbers)
    lot_ids = list(held.values_list('lot_id', flat=True))
    lot_ids = [lot.pk for lot in Lot.objects.select_for_update().filter(pk__in=lot_ids).order_by('pk')]

    qs = LotLocation.objects.select_for_update().select_related('lot').filter(
        lot_id__in=lot_ids, location=location, quantity__gt=0,
    )
    if lot_numbers:
        order = {number: i for i, number in enumerate(lot_numbers)}
        return sorted(qs, key=lambda s: order[s.lot.lot_number])
    return list(qs.order_by('lot__created_at', 'lot__lot_number'))


def lot_shortfalls(location, lines) -> list[tuple[dict, int]]:
    """
    Replay the slice draws of several lines without writing anything.

    Lines naming lots go first, then the rest, the order commit_transfer()
    draws them in. Each line draws like draw_slices(): named lots in the
    given order, otherwise oldest lot first. Two lines naming the same lot
    share what it holds.

    Args:
        lines: Dicts with sku, quantity and lot_numbers

    Returns:
        (line, units its named lots could cover) for every named-lot line left short
    """
    skus = {line['sku'] for line in lines}
    remaining = defaultdict(dict)
    for sku, number, quantity in (
        LotLocation.objects.filter(lot__sku__in=skus, location=location, quantity__gt=0)
        .order_by('lot__created_at', 'lot__lot_number')
        .values_list('lot__sku', 'lot__lot_number', 'quantity')
    ):
        remaining[sku][number] = quantity

    short = []
    for line in sorted(lines, key=lambda line: not line['lot_numbers']):
        held = remaining[line['sku']]
        names = line['lot_numbers'] or list(held)
        needed = line['quantity']
        for number in names:
            take = min(held.get(number, 0), needed)
            if take:
                held[number] -= take
                needed -= take
        if line['lot_numbers'] and needed > 0:
            short.append((line, line['quantity'] - needed))
    return short


def draw_slices(sku: str, location, quantity: int, lot_numbers=None) -> list[tuple[Lot, int]]:
    """
    Take quantity out of the slices at a location.

    Named lots are drawn in the given order and must cover the quantity
    (LotDepletionError otherwise). Without names the oldest lot goes
    first and any uncovered part is uncosted stock.

    Lot totals are untouched; callers decide whether the units left the
    business (consume_slices) or just moved (credit_slices elsewhere).

    Returns:
        List of (lot, quantity) actually drawn
    """
    slices = _locked_slices(sku, location, lot_numbers)

    if lot_numbers:
        held = sum(s.quantity for s in slices)
        if held < quantity:
            raise LotDepletionError(
                sku=sku,
                location=location.code,
                lots=list(lot_numbers),
                remaining=held,
                requested=quantity,
            )

    taken = []
    needed = quantity
    for slice_ in slices:
        if needed <= 0:
            break
        take = min(slice_.quantity, needed)
        LotLocation.objects.filter(pk=slice_.pk).update(
            quantity=F('quantity') - take,
            updated_at=timezone.now(),
        )
        taken.append((slice_.lot, take))
        needed -= take

    return taken


def consume_slices(sku: str, location, quantity: int, lot_number: str = '') -> list[tuple[Lot, int]]:
    """Draw slices and debit the lots: the units left the business."""
    taken = draw_slices(sku, location, quantity, [lot_number] if lot_number else None)
    for lot, qty in taken:
        _debit_lot(lot.pk, qty)
    return taken


def credit_slices(taken: list[tuple[Lot, int]], location) -> None:
    """Place previously drawn quantities at another location."""
    for lot, qty in taken:
        _credit_slice(lot, location, qty)


def receive_into_lot(sku: str, location, quantity: int, unit_cost, lot_number: str = '',
                     **lot_fields) -> Lot:
    """
    Open (or top up) the lot a receipt lands in and place it at the location.

    Receipts without a lot number get an automatic one, so every received
    unit belongs to a cost layer.

    Raises:
        StockError('DUPLICATE_LOT'): Lot number exists with a different unit cost
    """
    if not lot_number:
        lot_number = f"{sku}-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"

    lot = Lot.objects.select_for_update().filter(sku=sku, lot_number=lot_number).first()

    if lot is None:
        lot = Lot.objects.create(
            sku=sku,
            lot_number=lot_number,
            initial_quantity=quantity,
            remaining_quantity=quantity,
            unit_cost=unit_cost,
            **{k: v for k, v in lot_fields.items() if v not in (None, '')},
        )
    else:
        if lot.unit_cost != unit_cost:
            raise StockError(
                'DUPLICATE_LOT',
                sku=sku,
                lot_number=lot_number,
                unit_cost=lot.unit_cost,
            )
        Lot.objects.filter(pk=lot.pk).update(
            initial_quantity=F('initial_quantity') + quantity,
            remaining_quantity=F('remaining_quantity') + quantity,
            status=LotStatus.ACTIVE,
        )
        lot.refresh_from_db()

    _credit_slice(lot, location, quantity)
    return lot


def recredit_lot(sku: str, location, lot_number: str, quantity: int) -> Lot:
    """
    Return units to a specific lot (RETURN movements).

    Raises:
        StockError('LOT_NOT_FOUND'): Unknown lot
        StockError('INVALID_QUANTITY'): Would exceed the lot's initial quantity
    """
    lot = Lot.objects.select_for_update().filter(sku=sku, lot_number=lot_number).first()
    if lot is None:
        raise StockError('LOT_NOT_FOUND', sku=sku, lot_number=lot_number)

    if lot.remaining_quantity + quantity > lot.initial_quantity:
        raise StockError(
            'INVALID_QUANTITY',
            lot_number=lot_number,
            remaining=lot.remaining_quantity,
            initial=lot.initial_quantity,
            requested=quantity,
        )

    lot.remaining_quantity += quantity
    if lot.status == LotStatus.DEPLETED:
        lot.status = LotStatus.ACTIVE
    lot.save(update_fields=['remaining_quantity', 'status'])
    _credit_slice(lot, location, quantity)
    return lot


# ══════════════════════════════════════════════════════════════
# SERIALS
# ══════════════════════════════════════════════════════════════

def serial_problems(sku: str, serial_numbers, location, allowed_status) -> list[str]:
    """Serials that are unknown, elsewhere or in the wrong status (no locking)."""
    found = {
        s.serial_number: s
        for s in SerialUnit.objects.filter(sku=sku, serial_number__in=serial_numbers)
    }
    problems = []
    for number in serial_numbers:
        serial = found.get(number)
        if serial is None:
            problems.append(f"{number} não encontrado")
        elif location is not None and serial.location_id != location.pk:
            problems.append(f"{number} fora de {location.code}")
        elif serial.status not in allowed_status:
            problems.append(f"{number} com status {serial.status}")
    return problems


def move_serials(sku: str, serial_numbers, *, allowed_status, new_status,
                 from_location=None, to_location=None, note: str = '') -> list[SerialUnit]:
    """
    Change status and location of several serials at once.

    from_location (when given) is where the units must currently be;
    to_location is where they end up (None = left the business).

    Raises:
        StockError('SERIAL_NOT_FOUND') / StockError('INVALID_STATUS')
    """
    serials = list(
        SerialUnit.objects.select_for_update().filter(sku=sku, serial_number__in=serial_numbers)
    )
    if len(serials) != len(set(serial_numbers)):
        missing = set(serial_numbers) - {s.serial_number for s in serials}
        raise StockError('SERIAL_NOT_FOUND', sku=sku, serial_numbers=sorted(missing))

    for serial in serials:
        if from_location is not None and serial.location_id != from_location.pk:
            raise StockError(
                'INVALID_STATUS',
                serial_number=serial.serial_number,
                location=serial.location_id,
                expected=from_location.code,
            )
        if serial.status not in allowed_status:
            raise StockError(
                'INVALID_STATUS',
                serial_number=serial.serial_number,
                current=serial.status,
                expected=sorted(allowed_status),
            )

    for serial in serials:
        serial.status = new_status
        serial.location = to_location
        serial.save(update_fields=['status', 'location', 'updated_at'])
        SerialEvent.objects.create(serial=serial, status=new_status, location=to_location, note=note)

    return serials


class StockLots:
    """Lot and serial registry methods."""

    @classmethod
    def create_lot(cls, sku, lot_number, quantity, unit_cost,
                   manufacturing_date=None, expiry_date=None,
                   location=None, supplier=''):
        """
        Register a lot.

        With a location the whole quantity is placed there as a slice.
        This does not touch the ledger; receive_stock() is the path that
        puts units on hand.

        Raises:
            StockError('INVALID_QUANTITY'): quantity <= 0 or negative cost
            StockError('DUPLICATE_LOT'): lot_number already used for the SKU
        """
        if quantity <= 0 or unit_cost is None or unit_cost < 0:
            raise StockError('INVALID_QUANTITY', requested=quantity, unit_cost=unit_cost)

        with transaction.atomic():
            if Lot.objects.filter(sku=sku, lot_number=lot_number).exists():
                raise StockError('DUPLICATE_LOT', sku=sku, lot_number=lot_number)

            lot = Lot.objects.create(
                sku=sku,
                lot_number=lot_number,
                initial_quantity=quantity,
                remaining_quantity=quantity,
                unit_cost=unit_cost,
                manufacturing_date=manufacturing_date,
                expiry_date=expiry_date,
                supplier=supplier,
            )
            if location is not None:
                LotLocation.objects.create(lot=lot, location=location, quantity=quantity)

        logger.info(
            "stock.lot.created",
            extra={"sku": sku, "lot_number": lot_number, "qty": quantity},
        )
        return lot

    @classmethod
    def consume_from_lot(cls, lot_id, quantity, location=None):
        """
        Consume units from a lot.

        With a location, the slice there must cover the quantity.
        Without one, units not placed at any location go first, then
        slices by location code.

        Raises:
            StockError('LOT_NOT_FOUND'): Unknown lot
            LotDepletionError: quantity > remaining (or > the slice)
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        with transaction.atomic():
            try:
                lot = Lot.objects.select_for_update().get(pk=lot_id)
            except Lot.DoesNotExist:
                raise StockError('LOT_NOT_FOUND', lot_id=lot_id) from None

            if quantity > lot.remaining_quantity:
                raise LotDepletionError(
                    lot_number=lot.lot_number,
                    remaining=lot.remaining_quantity,
                    requested=quantity,
                )

            if location is not None:
                draw_slices(lot.sku, location, quantity, [lot.lot_number])
            else:
                slices = list(
                    lot.slices.select_for_update().filter(quantity__gt=0).order_by('location__code')
                )
                unplaced = lot.remaining_quantity - sum(s.quantity for s in slices)
                needed = quantity - min(unplaced, quantity)
                for slice_ in slices:
                    if needed <= 0:
                        break
                    take = min(slice_.quantity, needed)
                    slice_.quantity -= take
                    slice_.save(update_fields=['quantity', 'updated_at'])
                    needed -= take

            _debit_lot(lot.pk, quantity)
            lot.refresh_from_db()

        logger.info(
            "stock.lot.consumed",
            extra={"lot_number": lot.lot_number, "qty": quantity, "remaining": lot.remaining_quantity},
        )
        return lot

    @classmethod
    def track_serial(cls, sku, serial_number, lot_number='',
                     status=SerialStatus.IN_STOCK, location=None):
        """
        Start tracking a serial unit.

        Raises:
            DuplicateSerialError: serial_number already tracked for the SKU
            StockError('INVALID_STATUS'): Unknown status
        """
        if status not in SerialStatus.values:
            raise StockError('INVALID_STATUS', current=status)

        with transaction.atomic():
            if SerialUnit.objects.filter(sku=sku, serial_number=serial_number).exists():
                raise DuplicateSerialError(sku=sku, serial_number=serial_number)

            serial = SerialUnit.objects.create(
                sku=sku,
                serial_number=serial_number,
                lot_number=lot_number,
                status=status,
                location=location,
            )
            SerialEvent.objects.create(
                serial=serial,
                status=status,
                location=location,
                note='Cadastro inicial',
            )

        return serial

    @classmethod
    def update_serial_status(cls, serial_id, new_status, location=None, note=''):
        """
        Move a serial unit through its lifecycle.

        SOLD units leave the location unless one is given. A location can
        only be given to a unit that has none (sold or never placed): units
        on a shelf change location through a transfer.

        Raises:
            StockError('SERIAL_NOT_FOUND'): Unknown serial
            StockError('INVALID_STATUS'): Transition not allowed, or a
                placed unit given another location
        """
        with transaction.atomic():
            try:
                serial = SerialUnit.objects.select_for_update().get(pk=serial_id)
            except SerialUnit.DoesNotExist:
                raise StockError('SERIAL_NOT_FOUND', serial_id=serial_id) from None

            allowed = SERIAL_TRANSITIONS.get(serial.status, set())
            if new_status not in allowed:
                raise StockError(
                    'INVALID_STATUS',
                    current=serial.status,
                    requested=new_status,
                    expected=sorted(allowed),
                )

            if location is not None and serial.location_id not in (None, location.pk):
                raise StockError(
                    'INVALID_STATUS',
                    current=serial.status,
                    requested=new_status,
                    location=location.code,
                    hint='use request_transfer()',
                )

            serial.status = new_status
            if location is not None:
                serial.location = location
            elif new_status == SerialStatus.SOLD:
                serial.location = None
            serial.save(update_fields=['status', 'location', 'updated_at'])

            SerialEvent.objects.create(
                serial=serial,
                status=new_status,
                location=serial.location,
                note=note,
            )

        return serial

    @classmethod
    def get_expiring_lots(cls, threshold_days=None, sku=None):
        """
        Lots with stock expiring within threshold_days (default from settings).

        Read-only; ordered by expiry date.
        """
        if threshold_days is None:
            threshold_days = stockledger_settings.EXPIRY_THRESHOLD_DAYS

        lots = Lot.objects.all()
        if sku is not None:
            lots = lots.for_sku(sku)
        return filter_expiring_lots(lots, threshold_days)

    @classmethod
    def expire_lots(cls, today=None) -> int:
        """
        Mark ACTIVE lots past their expiry date as EXPIRED.

        Status only: expired units stay on hand until written off with an
        ADJUSTMENT.

        Returns:
            Number of lots marked
        """
        count = filter_expired_lots(
            Lot.objects.filter(status=LotStatus.ACTIVE), today
        ).update(status=LotStatus.EXPIRED)

        if count:
            logger.info("stock.lot.expired", extra={"count": count})
        return count

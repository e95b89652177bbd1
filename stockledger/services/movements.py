"""
Stock movements — state-changing operations (apply_movement, receive, count).

Every quantity change goes through post_movement() on a balance locked
with select_for_update() inside transaction.atomic(). That keeps the
invariant: quantity_on_hand == sum of the balance's movement deltas.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import F

from stockledger.adapters.catalog import validate_input_skus
from stockledger.conf import stockledger_settings
from stockledger.exceptions import InsufficientStock, InvalidReason, StockError
from stockledger.models.balance import StockBalance
from stockledger.models.count import StockCount, StockCountLine
from stockledger.models.enums import (
    INBOUND_REASONS,
    OUTBOUND_REASONS,
    TRANSFER_REASONS,
    ReasonCode,
    SerialStatus,
)
from stockledger.models.movement import Movement
from stockledger.services import lots
from stockledger.services.alerts import check_low_stock

logger = logging.getLogger('stockledger')


# ══════════════════════════════════════════════════════════════
# LOCKING
# ══════════════════════════════════════════════════════════════

def lock_balances(keys) -> dict[tuple[str, int], StockBalance]:
    """
    Lock the balances for (sku, location) pairs, creating missing rows.

    Rows are locked in one global order (location id, then sku) so two
    transfers moving stock in opposite directions cannot deadlock.
    Must run inside transaction.atomic().

    Returns:
        Dict keyed by (sku, location_id)
    """
    locations = {}
    for sku, location in keys:
        locations[(sku, location.pk)] = location

    locked = {}
    for sku, location_id in sorted(locations, key=lambda k: (k[1], k[0])):
        StockBalance.objects.get_or_create(sku=sku, location=locations[(sku, location_id)])
        locked[(sku, location_id)] = (
            StockBalance.objects.select_for_update()
            .select_related('location')
            .get(sku=sku, location_id=location_id)
        )
    return locked


def lock_balance(sku: str, location) -> StockBalance:
    return lock_balances([(sku, location)])[(sku, location.pk)]


# ══════════════════════════════════════════════════════════════
# VALIDATION
# ══════════════════════════════════════════════════════════════

def _as_quantity(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise StockError('INVALID_QUANTITY', requested=value)
    return value


def _as_cost(value) -> Decimal | None:
    if value is None:
        return None
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidReason(unit_cost=value) from None


def check_reason(reason_code, delta: int, unit_cost) -> None:
    """
    Reason/sign/cost consistency.

    Raises:
        InvalidReason: Unknown reason, wrong sign, or RECEIPT without unit_cost
    """
    if reason_code not in ReasonCode.values:
        raise InvalidReason(reason_code=reason_code)

    if reason_code in OUTBOUND_REASONS and delta > 0:
        raise InvalidReason(reason_code=reason_code, delta=delta, expected='negative')

    if reason_code in INBOUND_REASONS and delta < 0:
        raise InvalidReason(reason_code=reason_code, delta=delta, expected='positive')

    if reason_code == ReasonCode.RECEIPT and unit_cost is None:
        raise InvalidReason(reason_code=reason_code, missing='unit_cost')

    if unit_cost is not None and unit_cost < 0:
        raise InvalidReason(reason_code=reason_code, unit_cost=unit_cost)


def post_movement(balance: StockBalance, delta: int, reason_code, reference_id: str = '',
                  unit_cost=None, *, lot_number: str = '', lot_fields=None,
                  serial_numbers=(), allow_negative: bool = False,
                  from_reserved: bool = False, user=None, notes: str = '',
                  metadata=None) -> Movement:
    """
    Validate and append one movement to an already-locked balance.

    Shared by apply_movement(), record_count() and the transfer path.
    Lot slices are handled here for every reason except transfers, which
    move slices themselves. The balance's reorder policy is re-checked
    afterwards (see alerts.check_low_stock).

    An allowed shortfall needs something on hand to clamp to; with
    nothing on hand the decrement fails like any other.

    Returns:
        Created Movement
    """
    metadata = dict(metadata or {})
    on_hand = balance.quantity_on_hand
    reserved = balance.quantity_reserved
    reserved_change = 0

    if delta < 0:
        wanted = -delta
        if reason_code == ReasonCode.COUNT_CORRECTION or from_reserved:
            available = on_hand
        elif reason_code == ReasonCode.ADJUSTMENT and allow_negative and on_hand > 0:
            available = on_hand
            if wanted > on_hand:
                metadata['shortfall'] = wanted - on_hand
                delta = -on_hand
        else:
            available = on_hand - reserved

        if -delta > available:
            raise InsufficientStock(
                sku=balance.sku,
                location=balance.location.code,
                available=available,
                requested=wanted,
            )

        if from_reserved:
            reserved_change = -min(reserved, -delta)

    # Reservations never exceed what is left on hand
    if reserved + reserved_change > on_hand + delta:
        reserved_change = (on_hand + delta) - reserved

    if len(serial_numbers) > abs(delta):
        raise StockError('INVALID_QUANTITY', requested=abs(delta), serials=len(serial_numbers))

    # Reserved first: on_hand must never drop below it, even mid-transaction
    if reserved_change:
        StockBalance.objects.filter(pk=balance.pk).update(
            quantity_reserved=F('quantity_reserved') + reserved_change
        )

    lot = None
    if reason_code == ReasonCode.RECEIPT:
        lot = lots.receive_into_lot(
            balance.sku, balance.location, delta, unit_cost, lot_number, **(lot_fields or {})
        )
    elif reason_code not in TRANSFER_REASONS:
        if delta < 0:
            taken = lots.consume_slices(balance.sku, balance.location, -delta, lot_number)
            if taken:
                metadata['lots'] = [{'lot': t.lot_number, 'qty': q} for t, q in taken]
            if lot_number and taken:
                lot = taken[0][0]
        elif lot_number:
            if reason_code != ReasonCode.RETURN:
                raise InvalidReason(reason_code=reason_code, lot_number=lot_number)
            lot = lots.recredit_lot(balance.sku, balance.location, lot_number, delta)

    if serial_numbers:
        if reason_code == ReasonCode.SALE:
            lots.move_serials(
                balance.sku, serial_numbers,
                allowed_status={SerialStatus.IN_STOCK, SerialStatus.RESERVED},
                new_status=SerialStatus.SOLD,
                from_location=balance.location,
                to_location=None,
                note=reference_id,
            )
        elif reason_code == ReasonCode.RETURN:
            lots.move_serials(
                balance.sku, serial_numbers,
                allowed_status={SerialStatus.SOLD},
                new_status=SerialStatus.RETURNED,
                to_location=balance.location,
                note=reference_id,
            )
        elif reason_code == ReasonCode.RECEIPT:
            for number in serial_numbers:
                lots.StockLots.track_serial(
                    balance.sku, number,
                    lot_number=lot.lot_number if lot else '',
                    location=balance.location,
                )
        else:
            raise InvalidReason(reason_code=reason_code, serial_numbers=list(serial_numbers))
        metadata['serials'] = list(serial_numbers)

    movement = Movement.objects.create(
        sku=balance.sku,
        location=balance.location,
        balance=balance,
        delta=delta,
        reason_code=reason_code,
        reference_id=reference_id,
        unit_cost=unit_cost,
        lot=lot,
        balance_after=on_hand + delta,
        notes=notes,
        metadata=metadata,
        created_by=user,
    )
    balance.refresh_from_db()
    if stockledger_settings.ALERT_ON_MOVEMENT:
        check_low_stock(balance)
    return movement


class StockMovements:
    """State-changing stock movement methods."""

    @classmethod
    def apply_movement(cls, sku, location, delta, reason_code, reference_id='',
                       unit_cost=None, *, lot_number='', serial_numbers=(),
                       allow_negative=False, from_reserved=False, user=None,
                       notes='', **metadata):
        """
        The single entry point for quantity changes.

        Args:
            delta: Signed integer, never zero
            reason_code: ReasonCode (TRANSFER_* are reserved to transfers)
            unit_cost: Required for RECEIPT
            lot_number: Lot to receive into / consume from / re-credit (RETURN)
            serial_numbers: Serials sold (SALE), returned (RETURN) or received
            allow_negative: ADJUSTMENT only, clamp to what is on hand and record
                the rest as metadata['shortfall'] (nothing on hand still fails)
            from_reserved: Decrement consumes a prior reservation

        Raises:
            StockError('INVALID_QUANTITY'): delta not a non-zero integer
            InvalidReason: Reason/sign/cost mismatch
            InsufficientStock: Decrement beyond availability (balance unchanged)
            LotDepletionError: Named lot's slice too small

        Concurrency:
            - Runs under transaction.atomic()
            - Uses select_for_update() on StockBalance
            - Movement.save() updates quantity_on_hand with F()
        """
        delta = _as_quantity(delta)
        if delta == 0:
            raise StockError('INVALID_QUANTITY', requested=delta)

        unit_cost = _as_cost(unit_cost)
        check_reason(reason_code, delta, unit_cost)
        if reason_code in TRANSFER_REASONS:
            raise InvalidReason(reason_code=reason_code, hint='use request_transfer()')

        validate_input_skus([sku])

        with transaction.atomic():
            balance = lock_balance(sku, location)
            movement = post_movement(
                balance, delta, reason_code, reference_id, unit_cost,
                lot_number=lot_number,
                serial_numbers=tuple(serial_numbers),
                allow_negative=allow_negative,
                from_reserved=from_reserved,
                user=user,
                notes=notes,
                metadata=metadata,
            )

        logger.info(
            "stock.movement",
            extra={
                "sku": sku,
                "location": location.code,
                "delta": movement.delta,
                "reason": reason_code,
                "reference": reference_id,
                "movement_id": movement.pk,
            },
        )
        if 'shortfall' in movement.metadata:
            logger.warning(
                "stock.adjustment.shortfall",
                extra={
                    "sku": sku,
                    "location": location.code,
                    "shortfall": movement.metadata['shortfall'],
                    "movement_id": movement.pk,
                },
            )
        return movement

    @classmethod
    def receive_stock(cls, sku, location, quantity, unit_cost, lot_number='',
                      manufacturing_date=None, expiry_date=None, supplier='',
                      serial_numbers=(), reference_id='', user=None, notes=''):
        """
        Stock entry (purchase receipt).

        RECEIPT movement plus the lot it lands in (named or automatic).

        Raises:
            StockError('INVALID_QUANTITY'): quantity <= 0
            InvalidReason: unit_cost missing
        """
        quantity = _as_quantity(quantity)
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        unit_cost = _as_cost(unit_cost)
        check_reason(ReasonCode.RECEIPT, quantity, unit_cost)
        validate_input_skus([sku])

        with transaction.atomic():
            balance = lock_balance(sku, location)
            movement = post_movement(
                balance, quantity, ReasonCode.RECEIPT, reference_id, unit_cost,
                lot_number=lot_number,
                lot_fields={
                    'manufacturing_date': manufacturing_date,
                    'expiry_date': expiry_date,
                    'supplier': supplier,
                },
                serial_numbers=tuple(serial_numbers),
                user=user,
                notes=notes,
            )

        logger.info(
            "stock.receive",
            extra={
                "sku": sku,
                "location": location.code,
                "qty": quantity,
                "unit_cost": str(unit_cost),
                "lot_number": movement.lot.lot_number,
                "movement_id": movement.pk,
            },
        )
        return movement

    @classmethod
    def reserve(cls, sku, location, quantity):
        """
        Reserve on-hand units (checkout in progress).

        Raises:
            InsufficientStock: quantity > available
        """
        quantity = _as_quantity(quantity)
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        with transaction.atomic():
            balance = lock_balance(sku, location)
            if quantity > balance.available:
                raise InsufficientStock(
                    sku=sku,
                    location=location.code,
                    available=balance.available,
                    requested=quantity,
                )
            StockBalance.objects.filter(pk=balance.pk).update(
                quantity_reserved=F('quantity_reserved') + quantity,
                version=F('version') + 1,
            )
            balance.refresh_from_db()

        logger.info("stock.reserve", extra={"sku": sku, "location": location.code, "qty": quantity})
        return balance

    @classmethod
    def unreserve(cls, sku, location, quantity):
        """
        Release a reservation.

        Raises:
            StockError('INVALID_QUANTITY'): quantity > reserved
        """
        quantity = _as_quantity(quantity)
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        with transaction.atomic():
            balance = lock_balance(sku, location)
            if quantity > balance.quantity_reserved:
                raise StockError(
                    'INVALID_QUANTITY',
                    reserved=balance.quantity_reserved,
                    requested=quantity,
                )
            StockBalance.objects.filter(pk=balance.pk).update(
                quantity_reserved=F('quantity_reserved') - quantity,
                version=F('version') + 1,
            )
            balance.refresh_from_db()

        logger.info("stock.unreserve", extra={"sku": sku, "location": location.code, "qty": quantity})
        return balance

    @classmethod
    def record_count(cls, location, counts, reference='', user=None):
        """
        Physical count of a location.

        counts: [{'sku': ..., 'counted': int, 'notes': optional}]
        One COUNT_CORRECTION per SKU whose count differs, all or nothing.

        Raises:
            StockError('INVALID_QUANTITY'): Negative or non-integer count, repeated SKU
        """
        entries = []
        seen = set()
        for entry in counts:
            sku = entry['sku']
            counted = _as_quantity(entry['counted'])
            if counted < 0 or sku in seen:
                raise StockError('INVALID_QUANTITY', sku=sku, counted=counted)
            seen.add(sku)
            entries.append((sku, counted, entry.get('notes') or ''))

        validate_input_skus(seen)

        with transaction.atomic():
            count = StockCount.objects.create(
                location=location,
                reference=reference,
                counted_by=user,
            )
            balances = lock_balances([(sku, location) for sku, _, _ in entries])

            for sku, counted, notes in entries:
                balance = balances[(sku, location.pk)]
                system_quantity = balance.quantity_on_hand
                difference = counted - system_quantity

                movement = None
                if difference:
                    movement = post_movement(
                        balance, difference, ReasonCode.COUNT_CORRECTION,
                        count.reference_id,
                        user=user,
                        notes=notes or 'Ajuste de contagem',
                    )

                StockCountLine.objects.create(
                    count=count,
                    sku=sku,
                    system_quantity=system_quantity,
                    counted_quantity=counted,
                    difference=difference,
                    notes=notes,
                    movement=movement,
                )

        logger.info(
            "stock.count",
            extra={
                "location": location.code,
                "count_id": count.pk,
                "lines": len(entries),
                "corrections": sum(1 for line in count.lines.all() if line.difference),
            },
        )
        return count

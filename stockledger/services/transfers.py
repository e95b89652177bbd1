"""
Stock transfers — two-phase moves between locations.

request_transfer() only validates and records intent (PENDING).
commit_transfer() re-validates under lock and performs the whole move in
one transaction: TRANSFER_OUT at the source, TRANSFER_IN at the
destination, lot slices and serials re-homed.
"""

import logging
from collections import defaultdict

from django.db import transaction
from django.utils import timezone

from stockledger.adapters.catalog import validate_input_skus
from stockledger.exceptions import InvalidTransferState, StockError, TransferValidationError
from stockledger.models.balance import StockBalance
from stockledger.models.enums import ReasonCode, SerialStatus, TransferStatus
from stockledger.models.transfer import TransferLine, TransferOrder
from stockledger.services import lots
from stockledger.services.movements import lock_balances, post_movement

logger = logging.getLogger('stockledger')


def _normalize_items(items) -> list[dict]:
    lines = []
    for item in items:
        lines.append({
            'sku': item['sku'],
            'quantity': item['quantity'],
            'lot_numbers': list(item.get('lot_numbers') or []),
            'serial_numbers': list(item.get('serial_numbers') or []),
        })
    return lines


def _check_lines(source, lines, available=None) -> list[str]:
    """
    Problems that prevent moving these lines out of source.

    Args:
        lines: Dicts with sku, quantity, lot_numbers, serial_numbers
        available: {sku: units} to check against (default: current balances)

    Returns:
        Human-readable problems, empty when the lines can move
    """
    problems = []
    wanted = defaultdict(int)
    valid = []
    claimed = defaultdict(set)

    for line in lines:
        sku, quantity = line['sku'], line['quantity']
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            problems.append(f"{sku}: quantidade inválida ({quantity})")
            continue
        wanted[sku] += quantity
        valid.append(line)

        serials = line['serial_numbers']
        if serials:
            if len(serials) > quantity:
                problems.append(f"{sku}: {len(serials)} números de série para {quantity} unidades")
            for number in sorted(claimed[sku].intersection(serials)):
                problems.append(f"{sku}: série {number} em mais de uma linha")
            claimed[sku].update(serials)
            for problem in lots.serial_problems(sku, serials, source, {SerialStatus.IN_STOCK}):
                problems.append(f"{sku}: série {problem}")

    # Named lots are checked across all lines: two lines may name the same lot
    for line, covered in lots.lot_shortfalls(source, valid):
        problems.append(
            f"{line['sku']}: lotes {', '.join(line['lot_numbers'])} cobrem {covered} "
            f"em {source.code}, solicitado {line['quantity']}"
        )

    if available is None:
        available = {
            b.sku: b.available
            for b in StockBalance.objects.filter(location=source, sku__in=list(wanted))
        }

    for sku, quantity in wanted.items():
        have = available.get(sku, 0)
        if quantity > have:
            problems.append(f"{sku}: disponível {have} em {source.code}, solicitado {quantity}")

    return problems


def _line_dict(line: TransferLine) -> dict:
    return {
        'sku': line.sku,
        'quantity': line.quantity,
        'lot_numbers': line.lot_numbers or [],
        'serial_numbers': line.serial_numbers or [],
    }


class StockTransfers:
    """Transfer coordinator methods."""

    @classmethod
    def request_transfer(cls, from_location, to_location, items, requested_by=None, notes=''):
        """
        Record a PENDING transfer after a soft availability check.

        Args:
            items: [{'sku': ..., 'quantity': int, 'lot_numbers'?: [...], 'serial_numbers'?: [...]}]

        Raises:
            TransferValidationError: Same location, no items, bad quantity,
                not enough stock, lots or serials not at the source
        """
        if from_location.pk == to_location.pk:
            raise TransferValidationError(
                from_location=from_location.code,
                to_location=to_location.code,
                errors=['Origem e destino devem ser diferentes'],
            )

        lines = _normalize_items(items)
        if not lines:
            raise TransferValidationError(errors=['Transferência sem itens'])

        validate_input_skus(line['sku'] for line in lines)

        problems = _check_lines(from_location, lines)
        if problems:
            raise TransferValidationError(errors=problems)

        with transaction.atomic():
            order = TransferOrder.objects.create(
                from_location=from_location,
                to_location=to_location,
                requested_by=requested_by,
                notes=notes,
            )
            TransferLine.objects.bulk_create([
                TransferLine(order=order, **line) for line in lines
            ])

        logger.info(
            "stock.transfer.requested",
            extra={
                "transfer_id": order.pk,
                "from": from_location.code,
                "to": to_location.code,
                "lines": len(lines),
            },
        )
        return order

    @classmethod
    def _lock_order(cls, transfer_id) -> TransferOrder:
        try:
            order = (
                TransferOrder.objects.select_for_update()
                .get(pk=transfer_id)
            )
        except TransferOrder.DoesNotExist:
            raise StockError('TRANSFER_NOT_FOUND', transfer_id=transfer_id) from None

        if not order.is_pending:
            raise InvalidTransferState(transfer_id=transfer_id, status=order.status)
        return order

    @classmethod
    def commit_transfer(cls, transfer_id, processed_by=None):
        """
        Execute a PENDING transfer.

        Every line is re-validated under lock before anything is written.
        On failure the order stays PENDING and no balance changes.

        Raises:
            StockError('TRANSFER_NOT_FOUND'): Unknown order
            InvalidTransferState: Order is not PENDING
            TransferValidationError: Stock, lots or serials no longer at the source

        Concurrency:
            - Order row locked first
            - Balances locked in (location id, sku) order
        """
        with transaction.atomic():
            order = cls._lock_order(transfer_id)
            source, destination = order.from_location, order.to_location
            # Named-lot lines draw before FIFO lines can take their slices
            lines = sorted(order.lines.all(), key=lambda line: not line.lot_numbers)
            reference = order.reference

            balances = lock_balances(
                [(line.sku, source) for line in lines]
                + [(line.sku, destination) for line in lines]
            )

            problems = _check_lines(
                source,
                [_line_dict(line) for line in lines],
                available={sku: b.available for (sku, loc), b in balances.items() if loc == source.pk},
            )
            if problems:
                raise TransferValidationError(transfer_id=transfer_id, errors=problems)

            for line in lines:
                taken = lots.draw_slices(line.sku, source, line.quantity, line.lot_numbers or None)
                moved = [{'lot': lot.lot_number, 'qty': qty} for lot, qty in taken]

                post_movement(
                    balances[(line.sku, source.pk)],
                    -line.quantity,
                    ReasonCode.TRANSFER_OUT,
                    reference,
                    user=processed_by,
                    metadata={'to': destination.code, 'lots': moved},
                )
                lots.credit_slices(taken, destination)
                post_movement(
                    balances[(line.sku, destination.pk)],
                    line.quantity,
                    ReasonCode.TRANSFER_IN,
                    reference,
                    user=processed_by,
                    metadata={'from': source.code, 'lots': moved},
                )

                if line.serial_numbers:
                    lots.move_serials(
                        line.sku, line.serial_numbers,
                        allowed_status={SerialStatus.IN_STOCK},
                        new_status=SerialStatus.IN_STOCK,
                        from_location=source,
                        to_location=destination,
                        note=reference,
                    )

            order.status = TransferStatus.COMMITTED
            order.processed_by = processed_by
            order.processed_at = timezone.now()
            order.save(update_fields=['status', 'processed_by', 'processed_at'])

        logger.info(
            "stock.transfer.committed",
            extra={
                "transfer_id": order.pk,
                "from": source.code,
                "to": destination.code,
                "lines": len(lines),
            },
        )
        return order

    @classmethod
    def cancel_transfer(cls, transfer_id, cancelled_by=None, reason=''):
        """
        Cancel a PENDING transfer. Nothing was moved, so nothing is undone.

        Raises:
            StockError('TRANSFER_NOT_FOUND'): Unknown order
            InvalidTransferState: Order is not PENDING
        """
        with transaction.atomic():
            order = cls._lock_order(transfer_id)
            order.status = TransferStatus.CANCELLED
            order.processed_by = cancelled_by
            order.processed_at = timezone.now()
            order.cancel_reason = reason
            order.save(update_fields=['status', 'processed_by', 'processed_at', 'cancel_reason'])

        logger.info(
            "stock.transfer.cancelled",
            extra={"transfer_id": order.pk, "reason": reason},
        )
        return order

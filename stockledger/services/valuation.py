"""
Inventory valuation — FIFO and weighted-average costing.

Read-only. FIFO walks the lot slices at the location (oldest lot first);
weighted average blends every RECEIPT at the location.

Totals are rounded to cents, unit values to 4 places (ROUND_HALF_UP).

    turnover          = units sold in the period / average on hand
    average on hand   = time-weighted balance_after over the period
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from stockledger.exceptions import UnknownCostingMethod
from stockledger.models.balance import StockBalance
from stockledger.models.enums import CostingMethod, LotStatus
from stockledger.models.lot import LotLocation
from stockledger.models.movement import Movement

CENTS = Decimal('0.01')
UNIT = Decimal('0.0001')
ZERO = Decimal('0')

TURNOVER_PERIODS = {
    'month': timedelta(days=30),
    'quarter': timedelta(days=90),
    'year': timedelta(days=365),
}


def money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def unit_money(value: Decimal) -> Decimal:
    return value.quantize(UNIT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Valuation:
    """
    Value of the stock on hand.

    uncosted_quantity: units on hand not covered by any cost layer
    (FIFO) or held with no receipt to average (weighted average).
    unit_value is the total over the costed units.
    """

    method: str
    quantity: int = 0
    total_value: Decimal = Decimal('0.00')
    unit_value: Decimal = Decimal('0.0000')
    uncosted_quantity: int = 0

    @classmethod
    def build(cls, method, quantity, total, uncosted) -> 'Valuation':
        costed = quantity - uncosted
        return cls(
            method=method,
            quantity=quantity,
            total_value=money(total),
            unit_value=unit_money(total / costed) if costed else unit_money(ZERO),
            uncosted_quantity=uncosted,
        )

    def as_dict(self) -> dict:
        return {
            'method': self.method,
            'quantity': self.quantity,
            'total_value': str(self.total_value),
            'unit_value': str(self.unit_value),
            'uncosted_quantity': self.uncosted_quantity,
        }


@dataclass(frozen=True)
class Turnover:
    sku: str
    location: str
    period: str
    start: datetime
    end: datetime
    units_sold: int
    average_on_hand: Decimal
    turnover: Decimal

    def as_dict(self) -> dict:
        return {
            'sku': self.sku,
            'location': self.location,
            'period': self.period,
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'units_sold': self.units_sold,
            'average_on_hand': str(self.average_on_hand),
            'turnover': str(self.turnover),
        }


def _average_on_hand(sku: str, location, start, end) -> Decimal:
    """On hand over [start, end], each level weighted by how long it held."""
    movements = Movement.objects.for_balance(sku, location)
    opening = (
        movements.filter(created_at__lt=start)
        .order_by('-created_at', '-id')
        .values_list('balance_after', flat=True)
        .first()
    )

    level = opening or 0
    cursor = start
    area = ZERO
    for created_at, balance_after in (
        movements.between(start, end)
        .order_by('created_at', 'id')
        .values_list('created_at', 'balance_after')
    ):
        area += level * Decimal(str((created_at - cursor).total_seconds()))
        level, cursor = balance_after, created_at
    area += level * Decimal(str((end - cursor).total_seconds()))

    return area / Decimal(str((end - start).total_seconds()))


def _check_method(method) -> None:
    if method not in CostingMethod.values:
        raise UnknownCostingMethod(method=method)


def _fifo_total(balance: StockBalance) -> tuple[Decimal, int]:
    """(value of the covered units, units left uncovered)."""
    slices = (
        LotLocation.objects
        .filter(lot__sku=balance.sku, location_id=balance.location_id, quantity__gt=0)
        .exclude(lot__status=LotStatus.DEPLETED)
        .select_related('lot')
        .order_by('lot__created_at', 'lot__lot_number')
    )

    total = ZERO
    needed = balance.quantity_on_hand
    for slice_ in slices:
        if needed <= 0:
            break
        take = min(slice_.quantity, needed)
        total += take * slice_.lot.unit_cost
        needed -= take
    return total, needed


def _log_average(sku: str, location) -> Decimal:
    quantity = 0
    value = ZERO
    for delta, unit_cost in Movement.objects.for_balance(sku, location).receipts().values_list(
        'delta', 'unit_cost'
    ):
        quantity += delta
        value += delta * (unit_cost or ZERO)
    return value / quantity if quantity else ZERO


def _value_balance(balance: StockBalance, method) -> Valuation:
    on_hand = balance.quantity_on_hand
    if on_hand <= 0:
        return Valuation(method=method)

    if method == CostingMethod.FIFO:
        total, uncosted = _fifo_total(balance)
        return Valuation.build(method, on_hand, total, uncosted)

    if not balance.received_quantity:
        return Valuation.build(method, on_hand, ZERO, on_hand)
    average = unit_money(balance.average_unit_cost)
    return Valuation.build(method, on_hand, average * on_hand, 0)


class StockValuation:
    """Valuation methods."""

    @classmethod
    def value_inventory(cls, sku, location, method=CostingMethod.FIFO) -> Valuation:
        """
        Value the stock of a SKU at a location.

        Args:
            method: 'FIFO' or 'WEIGHTED_AVERAGE'

        Raises:
            UnknownCostingMethod: Any other method
        """
        _check_method(method)
        balance = StockBalance.objects.filter(sku=sku, location=location).first()
        if balance is None:
            return Valuation(method=method)
        return _value_balance(balance, method)

    @classmethod
    def value_location(cls, location, method=CostingMethod.FIFO) -> Valuation:
        """Sum of the valuations of every SKU at a location."""
        _check_method(method)
        quantity = uncosted = 0
        total = ZERO
        for balance in StockBalance.objects.at_location(location).in_stock():
            valuation = _value_balance(balance, method)
            quantity += valuation.quantity
            uncosted += valuation.uncosted_quantity
            total += valuation.total_value
        if not quantity:
            return Valuation(method=method)
        return Valuation.build(method, quantity, total, uncosted)

    @classmethod
    def weighted_average_cost(cls, sku, location, from_log=False) -> Decimal:
        """
        Weighted-average unit cost of everything received at a location.

        Args:
            from_log: Recompute from RECEIPT movements instead of the balance cache

        Returns:
            Decimal (4 places), zero when nothing was received
        """
        if from_log:
            return unit_money(_log_average(sku, location))

        balance = StockBalance.objects.filter(sku=sku, location=location).first()
        if balance is None:
            return unit_money(ZERO)
        return unit_money(balance.average_unit_cost)

    @classmethod
    def inventory_turnover(cls, sku, location, period='month', end=None) -> Turnover:
        """
        How many times the average stock was sold through in a period.

        Args:
            period: 'month' (30 days), 'quarter' (90) or 'year' (365)
            end: Close of the period (default now)

        Returns:
            Turnover, 0 when nothing was on hand on average

        Raises:
            ValueError: Unknown period
        """
        if period not in TURNOVER_PERIODS:
            raise ValueError(f"period must be one of {', '.join(TURNOVER_PERIODS)}")

        end = end or timezone.now()
        start = end - TURNOVER_PERIODS[period]

        sold = -(
            Movement.objects.for_balance(sku, location)
            .sales()
            .between(start, end)
            .aggregate(t=Coalesce(Sum('delta'), 0))['t']
        )
        average = _average_on_hand(sku, location, start, end)

        return Turnover(
            sku=sku,
            location=location.code,
            period=period,
            start=start,
            end=end,
            units_sold=sold,
            average_on_hand=unit_money(average),
            turnover=unit_money(sold / average) if average > 0 else unit_money(ZERO),
        )

"""
Replenishment planning — reorder point, safety stock and EOQ.

Read-only: plans are computed from SALE movements and balances, never
written to the ledger. refresh_reorder_cache() stores them in Django's
cache for dashboards; the cache is never authoritative.

    avg_daily_demand = Σ |SALE delta| in the window / lookback_days
    safety_stock     = ceil(avg_daily_demand × safety_days)
    reorder_point    = ceil(avg_daily_demand × lead_time_days + safety_stock)
    EOQ              = ceil(√(2 × annual_demand × ordering_cost / holding_cost))
    holding_cost     = unit_cost × holding_cost_rate
"""

import logging
import math
from dataclasses import asdict, dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.core.cache import cache
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from stockledger.adapters.catalog import catalog_info
from stockledger.conf import stockledger_settings
from stockledger.models.balance import StockBalance
from stockledger.models.enums import ReorderPriority
from stockledger.models.location import Location
from stockledger.models.movement import Movement
from stockledger.models.policy import ReorderPolicy

logger = logging.getLogger('stockledger')

PRIORITY_ORDER = {
    ReorderPriority.HIGH: 0,
    ReorderPriority.MEDIUM: 1,
    ReorderPriority.LOW: 2,
}


@dataclass(frozen=True)
class ReorderPlan:
    sku: str
    location: str
    quantity_on_hand: int
    avg_daily_demand: Decimal
    safety_stock: int
    reorder_point: int
    order_quantity: int
    priority: str | None
    unit_cost: Decimal

    @property
    def needs_reorder(self) -> bool:
        return self.priority is not None

    def as_dict(self) -> dict:
        data = asdict(self)
        data['avg_daily_demand'] = str(self.avg_daily_demand)
        data['unit_cost'] = str(self.unit_cost)
        return data


def cache_key(location) -> str:
    return f"stockledger:reorder:{location.code}"


def _sold_units(sku: str, location, since) -> int:
    total = (
        Movement.objects.for_balance(sku, location)
        .sales()
        .filter(created_at__gte=since)
        .aggregate(t=Coalesce(Sum('delta'), 0))['t']
    )
    return -total


def _unit_cost(sku: str, policy, balance) -> Decimal:
    """Policy override, then weighted-average cost here, then catalog cost price."""
    if policy is not None and policy.unit_cost is not None:
        return policy.unit_cost
    if balance is not None and balance.received_quantity:
        return balance.average_unit_cost
    info = catalog_info(sku)
    if info is not None and info.cost_price is not None:
        return Decimal(str(info.cost_price))
    return Decimal('0')


def economic_order_quantity(annual_demand: Decimal, ordering_cost: Decimal,
                            holding_cost: Decimal) -> int:
    """EOQ, zero when there is no demand or no holding cost to balance."""
    if annual_demand <= 0 or holding_cost <= 0:
        return 0
    return math.ceil((2 * annual_demand * ordering_cost / holding_cost).sqrt())


def reorder_priority(on_hand: int, safety_stock: int, reorder_point: int) -> str | None:
    """None above the reorder point (nothing to recommend)."""
    if on_hand > reorder_point:
        return None
    if on_hand == 0:
        return ReorderPriority.HIGH
    if on_hand < safety_stock:
        return ReorderPriority.MEDIUM
    return ReorderPriority.LOW


class StockPlanning:
    """Replenishment planner methods."""

    @classmethod
    def calculate_reorder_point(cls, sku, location, lookback_days=None) -> ReorderPlan:
        """
        Reorder plan for a SKU at a location.

        Parameters come from the matching active ReorderPolicy, falling
        back to the STOCKLEDGER defaults.

        Args:
            lookback_days: Sales window (default DEFAULT_LOOKBACK_DAYS)
        """
        if lookback_days is None:
            lookback_days = stockledger_settings.DEFAULT_LOOKBACK_DAYS
        if lookback_days <= 0:
            raise ValueError("lookback_days must be positive")

        policy = ReorderPolicy.resolve(sku, location)
        if policy is not None and not policy.is_active:
            policy = None

        def param(field, default):
            value = getattr(policy, field, None) if policy else None
            return default if value is None else value

        lead_time_days = param('lead_time_days', stockledger_settings.DEFAULT_LEAD_TIME_DAYS)
        safety_days = param('safety_days', stockledger_settings.DEFAULT_SAFETY_DAYS)
        ordering_cost = Decimal(str(param('ordering_cost', stockledger_settings.DEFAULT_ORDERING_COST)))
        holding_rate = Decimal(str(param('holding_cost_rate', stockledger_settings.DEFAULT_HOLDING_COST_RATE)))

        balance = StockBalance.objects.filter(sku=sku, location=location).first()
        on_hand = balance.quantity_on_hand if balance else 0

        since = timezone.now() - timedelta(days=lookback_days)
        avg_daily_demand = Decimal(_sold_units(sku, location, since)) / lookback_days

        safety_stock = math.ceil(avg_daily_demand * safety_days)
        reorder_point = math.ceil(avg_daily_demand * lead_time_days + safety_stock)

        unit_cost = _unit_cost(sku, policy, balance)
        order_quantity = economic_order_quantity(
            avg_daily_demand * 365,
            ordering_cost,
            unit_cost * holding_rate,
        )

        return ReorderPlan(
            sku=sku,
            location=location.code,
            quantity_on_hand=on_hand,
            avg_daily_demand=avg_daily_demand.quantize(Decimal('0.0001'), rounding=ROUND_HALF_UP),
            safety_stock=safety_stock,
            reorder_point=reorder_point,
            order_quantity=order_quantity,
            priority=reorder_priority(on_hand, safety_stock, reorder_point),
            unit_cost=unit_cost,
        )

    @classmethod
    def reorder_recommendations(cls, location, lookback_days=None) -> list[ReorderPlan]:
        """Plans that need reordering for every SKU held at a location, HIGH first."""
        skus = (
            StockBalance.objects.at_location(location)
            .order_by('sku')
            .values_list('sku', flat=True)
        )
        plans = [cls.calculate_reorder_point(sku, location, lookback_days) for sku in skus]
        return sorted(
            (p for p in plans if p.needs_reorder),
            key=lambda p: (PRIORITY_ORDER[p.priority], p.sku),
        )

    @classmethod
    def refresh_reorder_cache(cls, location=None) -> dict[str, list[dict]]:
        """
        Recompute recommendations and store them in the cache.

        Args:
            location: One location (None = every location)

        Returns:
            {location code: [plan dicts]}
        """
        locations = [location] if location is not None else Location.objects.all()
        timeout = stockledger_settings.REORDER_CACHE_TIMEOUT

        refreshed = {}
        for loc in locations:
            plans = [p.as_dict() for p in cls.reorder_recommendations(loc)]
            cache.set(cache_key(loc), plans, timeout)
            refreshed[loc.code] = plans

        logger.info(
            "stock.reorder.refreshed",
            extra={
                "locations": len(refreshed),
                "recommendations": sum(len(p) for p in refreshed.values()),
            },
        )
        return refreshed

    @classmethod
    def cached_recommendations(cls, location) -> list[dict] | None:
        """Last refreshed recommendations for a location (None if not cached)."""
        return cache.get(cache_key(location))

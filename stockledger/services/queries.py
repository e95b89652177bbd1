"""
Stock queries — read-only operations.

All methods are classmethod on Stock and use no locking.
"""

import logging

from stockledger.models.balance import StockBalance
from stockledger.models.movement import Movement

logger = logging.getLogger('stockledger')


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def get_balance(cls, sku: str, location) -> StockBalance | None:
        """Balance row for (sku, location), None if nothing was ever moved there."""
        return (
            StockBalance.objects
            .select_related('location')
            .filter(sku=sku, location=location)
            .first()
        )

    @classmethod
    def on_hand(cls, sku: str, location=None) -> int:
        """Quantity on hand at a location, or across all locations."""
        qs = StockBalance.objects.for_sku(sku)
        if location is not None:
            qs = qs.at_location(location)
        return sum(qs.values_list('quantity_on_hand', flat=True))

    @classmethod
    def available(cls, sku: str, location=None) -> int:
        """On hand minus reserved, at a location or across all locations."""
        qs = StockBalance.objects.for_sku(sku)
        if location is not None:
            qs = qs.at_location(location)
        return sum(b.available for b in qs)

    @classmethod
    def list_balances(cls, location=None, sku: str | None = None, in_stock: bool = False):
        """
        Balances filtered by location and/or SKU.

        Args:
            in_stock: Only rows with quantity_on_hand > 0
        """
        qs = StockBalance.objects.select_related('location')
        if location is not None:
            qs = qs.at_location(location)
        if sku is not None:
            qs = qs.for_sku(sku)
        if in_stock:
            qs = qs.in_stock()
        return qs.order_by('location__code', 'sku')

    @classmethod
    def get_stock_movements(cls, sku: str, location, start=None, end=None):
        """
        Movement history of a balance, newest first.

        Args:
            start / end: Optional datetime bounds (inclusive)
        """
        return (
            Movement.objects
            .for_balance(sku, location)
            .between(start, end)
            .select_related('lot')
            .order_by('-created_at', '-id')
        )

    @classmethod
    def verify_ledger(cls, fix: bool = False) -> list[tuple[StockBalance, int]]:
        """
        Audit every balance against its movement log.

        Args:
            fix: Rewrite drifted caches to the log total

        Returns:
            List of (balance, quantity according to the log) for drifted rows
        """
        drifted = []
        for balance in StockBalance.objects.select_related('location').order_by('pk'):
            cached = balance.quantity_on_hand
            total = balance.recalculate(fix=fix)
            if total != cached:
                drifted.append((balance, total))

        logger.info(
            "stock.ledger.verified",
            extra={"drifted": len(drifted), "fixed": fix},
        )
        return drifted

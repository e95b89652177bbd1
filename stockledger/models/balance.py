"""
StockBalance model — Quantity cache per (sku, location).
"""

import logging
from decimal import Decimal

from django.db import models
from django.db.models import F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger('stockledger')


class StockBalanceQuerySet(models.QuerySet):
    """QuerySet with helper filters for balance queries."""

    def for_sku(self, sku: str):
        return self.filter(sku=sku)

    def at_location(self, location):
        return self.filter(location=location)

    def in_stock(self):
        """Only rows with something on hand."""
        return self.filter(quantity_on_hand__gt=0)


class StockBalance(models.Model):
    """
    Quantity of a SKU at a location.

    Performance:
    - quantity_on_hand is a cache updated atomically by Movement
    - Read is O(1), not O(N)
    - Use recalculate() for audit/correction

    received_quantity / received_value accumulate every RECEIPT so the
    weighted-average cost is available without scanning the log.
    """

    sku = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('SKU'),
    )
    location = models.ForeignKey(
        'stockledger.Location',
        on_delete=models.PROTECT,
        related_name='balances',
        verbose_name=_('Local'),
    )

    # Quantity cache (updated atomically by Movement)
    quantity_on_hand = models.IntegerField(
        default=0,
        verbose_name=_('Em estoque'),
    )
    quantity_reserved = models.IntegerField(
        default=0,
        verbose_name=_('Reservado'),
    )

    # Cumulative receipts (weighted-average cost)
    received_quantity = models.BigIntegerField(
        default=0,
        verbose_name=_('Quantidade recebida'),
    )
    received_value = models.DecimalField(
        max_digits=18,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Valor recebido'),
    )

    version = models.PositiveIntegerField(default=0, verbose_name=_('Versão'))
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockBalanceQuerySet.as_manager()

    class Meta:
        verbose_name = _('Saldo')
        verbose_name_plural = _('Saldos')
        constraints = [
            models.UniqueConstraint(
                fields=['sku', 'location'],
                name='unique_balance_sku_location',
            ),
            models.CheckConstraint(
                condition=Q(quantity_on_hand__gte=0),
                name='balance_on_hand_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(quantity_reserved__gte=0) & Q(quantity_reserved__lte=F('quantity_on_hand')),
                name='balance_reserved_within_on_hand',
            ),
        ]
        indexes = [
            models.Index(fields=['location', 'sku'], name='balance_location_sku_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def available(self) -> int:
        """On hand minus reserved."""
        return self.quantity_on_hand - self.quantity_reserved

    @property
    def average_unit_cost(self) -> Decimal:
        """Running weighted-average cost of everything received here."""
        if not self.received_quantity:
            return Decimal('0')
        return self.received_value / self.received_quantity

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def recalculate(self, fix: bool = True) -> int:
        """
        Recalculate quantity from Movements.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency

        Returns:
            Quantity according to the movement log
        """
        total = self.movements.aggregate(
            t=Coalesce(Sum('delta'), 0)
        )['t']

        if total != self.quantity_on_hand:
            logger.warning(
                f"StockBalance {self.pk} ({self.sku}@{self.location_id}) drift: "
                f"{self.quantity_on_hand} → {total} (diff: {total - self.quantity_on_hand})"
            )
            if fix:
                self.quantity_on_hand = total
                self.quantity_reserved = min(self.quantity_reserved, max(total, 0))
                self.save(update_fields=['quantity_on_hand', 'quantity_reserved', 'updated_at'])

        return total

    def __str__(self) -> str:
        return f"{self.sku} [{self.location.code}]: {self.quantity_on_hand}"

"""
Lot model — batch traceability and cost layers.

Every receipt lands in a lot, so lots double as the FIFO cost layers used
by valuation. A lot belongs to a SKU; where its units physically are is
tracked by LotLocation slices.

Usage:
    lot = stock.create_lot(
        'LEITE-1L', 'L2026-0223-A', 50, Decimal('3.20'),
        expiry_date=date.today() + timedelta(days=10),
    )
"""

from datetime import date

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _

from stockledger.expiry import is_expired
from stockledger.models.enums import LotStatus


class LotQuerySet(models.QuerySet):
    """Custom QuerySet for Lot with convenience filters."""

    def expiring_before(self, day: date):
        """Lots with stock expiring on or before the given date."""
        return self.filter(
            expiry_date__isnull=False,
            expiry_date__lte=day,
            remaining_quantity__gt=0,
        )

    def for_sku(self, sku: str):
        return self.filter(sku=sku)


class Lot(models.Model):
    """
    Batch of fungible units received together, sharing a cost and expiry.

    remaining_quantity only goes down (consumption), except RETURN
    movements that re-credit a specific lot.
    """

    sku = models.CharField(max_length=64, db_index=True, verbose_name=_('SKU'))
    lot_number = models.CharField(
        max_length=64,
        verbose_name=_('Número do Lote'),
    )

    initial_quantity = models.PositiveIntegerField(verbose_name=_('Quantidade inicial'))
    remaining_quantity = models.PositiveIntegerField(verbose_name=_('Quantidade restante'))
    unit_cost = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        verbose_name=_('Custo unitário'),
    )

    manufacturing_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Data de Fabricação'),
    )
    expiry_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Data de Validade'),
        help_text=_('Último dia em que o lote pode ser vendido/utilizado'),
    )
    status = models.CharField(
        max_length=20,
        choices=LotStatus.choices,
        default=LotStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    supplier = models.CharField(
        max_length=200,
        blank=True,
        default='',
        verbose_name=_('Fornecedor'),
    )

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Criado em'))

    objects = LotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lote')
        verbose_name_plural = _('Lotes')
        ordering = ['created_at', 'lot_number']
        constraints = [
            models.UniqueConstraint(
                fields=['sku', 'lot_number'],
                name='unique_lot_number_per_sku',
            ),
            models.CheckConstraint(
                condition=Q(remaining_quantity__lte=F('initial_quantity')),
                name='lot_remaining_within_initial',
            ),
        ]
        indexes = [
            models.Index(fields=['sku', 'status'], name='lot_sku_status_idx'),
        ]

    @property
    def is_expired(self) -> bool:
        """Is this lot past its expiry date?"""
        return is_expired(self)

    def __str__(self) -> str:
        expiry = f" (val:{self.expiry_date})" if self.expiry_date else ""
        return f"Lote {self.lot_number}{expiry}"


class LotLocation(models.Model):
    """
    Slice of a lot held at one location.

    The slices of a lot add up to its remaining_quantity. Transfers move
    quantity between slices without touching the lot total.
    """

    lot = models.ForeignKey(
        Lot,
        on_delete=models.CASCADE,
        related_name='slices',
        verbose_name=_('Lote'),
    )
    location = models.ForeignKey(
        'stockledger.Location',
        on_delete=models.PROTECT,
        related_name='lot_slices',
        verbose_name=_('Local'),
    )
    quantity = models.PositiveIntegerField(default=0, verbose_name=_('Quantidade'))
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Lote por local')
        verbose_name_plural = _('Lotes por local')
        constraints = [
            models.UniqueConstraint(
                fields=['lot', 'location'],
                name='unique_lot_slice_per_location',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.lot.lot_number} @ {self.location.code}: {self.quantity}"

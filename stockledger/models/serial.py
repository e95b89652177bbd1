"""
SerialUnit model — individually tracked units.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import SerialStatus


class SerialUnit(models.Model):
    """
    One physical unit identified by its serial number.

    LIFECYCLE:

        IN_STOCK ──► RESERVED ──► SOLD ──► RETURNED ──► IN_STOCK
            │            │                     │
            └────────────┴──► DEFECTIVE ◄──────┘

    The location must always agree with the StockBalance the unit
    contributes to; transfers re-home it on commit.
    """

    sku = models.CharField(max_length=64, db_index=True, verbose_name=_('SKU'))
    serial_number = models.CharField(max_length=100, verbose_name=_('Número de Série'))
    lot_number = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Lote'))
    location = models.ForeignKey(
        'stockledger.Location',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='serials',
        verbose_name=_('Local'),
    )
    status = models.CharField(
        max_length=20,
        choices=SerialStatus.choices,
        default=SerialStatus.IN_STOCK,
        db_index=True,
        verbose_name=_('Status'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Número de Série')
        verbose_name_plural = _('Números de Série')
        constraints = [
            models.UniqueConstraint(
                fields=['sku', 'serial_number'],
                name='unique_serial_per_sku',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.sku} #{self.serial_number} ({self.get_status_display()})"


class SerialEvent(models.Model):
    """Append-only history of a serial unit."""

    serial = models.ForeignKey(
        SerialUnit,
        on_delete=models.CASCADE,
        related_name='events',
    )
    status = models.CharField(max_length=20, choices=SerialStatus.choices)
    location = models.ForeignKey(
        'stockledger.Location',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
    )
    note = models.CharField(max_length=255, blank=True, default='')
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _('Histórico de Série')
        verbose_name_plural = _('Históricos de Série')
        ordering = ['created_at', 'id']

    def __str__(self) -> str:
        return f"{self.serial.serial_number}: {self.status}"

"""
TransferOrder model — two-phase move of stock between locations.
"""

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import TransferStatus


class TransferOrder(models.Model):
    """
    Request to move stock from one location to another.

    LIFECYCLE:

        ┌─────────┐   commit()   ┌───────────┐
        │ PENDING │ ───────────► │ COMMITTED │
        └─────────┘              └───────────┘
             │
             │ cancel()
             ▼
        ┌───────────┐
        │ CANCELLED │
        └───────────┘

    Only one terminal transition is allowed; nothing changes afterwards.
    Undoing a committed transfer is a new transfer in the opposite direction.
    """

    from_location = models.ForeignKey(
        'stockledger.Location',
        on_delete=models.PROTECT,
        related_name='transfers_out',
        verbose_name=_('Origem'),
    )
    to_location = models.ForeignKey(
        'stockledger.Location',
        on_delete=models.PROTECT,
        related_name='transfers_in',
        verbose_name=_('Destino'),
    )
    status = models.CharField(
        max_length=20,
        choices=TransferStatus.choices,
        default=TransferStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Solicitado por'),
    )
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Processado por'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    cancel_reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Motivo do cancelamento'))

    created_at = models.DateTimeField(default=timezone.now, verbose_name=_('Criado em'))
    processed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Processado em'))

    class Meta:
        verbose_name = _('Transferência')
        verbose_name_plural = _('Transferências')
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=~Q(from_location=F('to_location')),
                name='transfer_distinct_locations',
            ),
        ]

    @property
    def reference(self) -> str:
        """reference_id carried by the movements this transfer emits."""
        return f"transfer:{self.pk}"

    @property
    def is_pending(self) -> bool:
        return self.status == TransferStatus.PENDING

    def __str__(self) -> str:
        return f"Transferência #{self.pk} {self.from_location.code} → {self.to_location.code} ({self.status})"


class TransferLine(models.Model):
    """Line item of a transfer order."""

    order = models.ForeignKey(
        TransferOrder,
        on_delete=models.CASCADE,
        related_name='lines',
        verbose_name=_('Transferência'),
    )
    sku = models.CharField(max_length=64, verbose_name=_('SKU'))
    quantity = models.PositiveIntegerField(verbose_name=_('Quantidade'))
    lot_numbers = models.JSONField(default=list, blank=True, verbose_name=_('Lotes'))
    serial_numbers = models.JSONField(default=list, blank=True, verbose_name=_('Números de série'))

    class Meta:
        verbose_name = _('Item da transferência')
        verbose_name_plural = _('Itens da transferência')
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.quantity}x {self.sku}"

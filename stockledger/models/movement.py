"""
Movement model — Immutable ledger of quantity changes.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import ReasonCode


class MovementQuerySet(models.QuerySet):

    def for_balance(self, sku: str, location):
        return self.filter(sku=sku, location=location)

    def receipts(self):
        return self.filter(reason_code=ReasonCode.RECEIPT)

    def sales(self):
        return self.filter(reason_code=ReasonCode.SALE)

    def between(self, start=None, end=None):
        qs = self
        if start is not None:
            qs = qs.filter(created_at__gte=start)
        if end is not None:
            qs = qs.filter(created_at__lte=end)
        return qs


class Movement(models.Model):
    """
    Immutable record of quantity change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new Movements with inverse delta
    - Updates StockBalance.quantity_on_hand atomically on save()

    This is the ONLY model that changes quantity. Create it through
    stock.apply_movement() (or the transfer/count paths), which lock and
    validate the balance first.
    """

    sku = models.CharField(max_length=64, db_index=True, verbose_name=_('SKU'))
    location = models.ForeignKey(
        'stockledger.Location',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Local'),
    )
    balance = models.ForeignKey(
        'stockledger.StockBalance',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Saldo'),
    )

    delta = models.IntegerField(
        verbose_name=_('Variação'),
        help_text=_('Positivo = entrada, Negativo = saída'),
    )
    reason_code = models.CharField(
        max_length=20,
        choices=ReasonCode.choices,
        db_index=True,
        verbose_name=_('Motivo'),
    )

    # External reference (sale, transfer, count, purchase receipt)
    reference_id = models.CharField(
        max_length=100,
        blank=True,
        default='',
        db_index=True,
        verbose_name=_('Referência'),
        help_text=_('Ex: "venda:123", "transfer:8", "count:4"'),
    )
    unit_cost = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        null=True,
        blank=True,
        verbose_name=_('Custo unitário'),
        help_text=_('Obrigatório para recebimentos'),
    )
    lot = models.ForeignKey(
        'stockledger.Lot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Lote'),
    )
    balance_after = models.IntegerField(
        null=True,
        blank=True,
        verbose_name=_('Saldo após'),
    )
    notes = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Observações'))
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Usuário'),
    )

    objects = MovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movimento')
        verbose_name_plural = _('Movimentos')
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['sku', 'location', 'created_at'], name='movement_sku_loc_created_idx'),
            models.Index(fields=['reference_id', 'reason_code'], name='movement_ref_reason_idx'),
        ]

    def save(self, *args, **kwargs):
        """Save movement and update balance cache atomically."""
        if self.pk:
            raise ValueError(
                "Movimentos são imutáveis. "
                "Para corrigir, crie um novo Movement com delta inverso."
            )

        if not self.reason_code:
            raise ValueError("Motivo é obrigatório")

        if not self.delta:
            raise ValueError("Variação não pode ser zero")

        with transaction.atomic():
            super().save(*args, **kwargs)

            from stockledger.models.balance import StockBalance

            changes = {
                'quantity_on_hand': F('quantity_on_hand') + self.delta,
                'version': F('version') + 1,
                'updated_at': timezone.now(),
            }
            if self.reason_code == ReasonCode.RECEIPT:
                changes['received_quantity'] = F('received_quantity') + self.delta
                changes['received_value'] = F('received_value') + self.value

            StockBalance.objects.filter(pk=self.balance_id).update(**changes)

    def delete(self, *args, **kwargs):
        """Prevent deletion — movements are immutable."""
        raise ValueError(
            "Movimentos são imutáveis. "
            "Para estornar, crie um novo Movement com delta inverso."
        )

    @property
    def value(self) -> Decimal:
        """delta × unit_cost (zero when uncosted)."""
        if self.unit_cost is None:
            return Decimal('0')
        return self.delta * self.unit_cost

    def __str__(self) -> str:
        signal = '+' if self.delta > 0 else ''
        return f"{signal}{self.delta} {self.sku} | {self.get_reason_code_display()}"

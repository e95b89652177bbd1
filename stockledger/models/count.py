"""
StockCount model — physical count sessions.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class StockCount(models.Model):
    """
    A physical count of one location.

    Each line records what the system believed, what was counted and the
    COUNT_CORRECTION movement that reconciled them (if any).
    """

    location = models.ForeignKey(
        'stockledger.Location',
        on_delete=models.PROTECT,
        related_name='counts',
        verbose_name=_('Local'),
    )
    reference = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Referência'))
    counted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Contado por'),
    )
    created_at = models.DateTimeField(default=timezone.now, verbose_name=_('Data/Hora'))

    class Meta:
        verbose_name = _('Contagem')
        verbose_name_plural = _('Contagens')
        ordering = ['-created_at']

    @property
    def reference_id(self) -> str:
        return f"count:{self.pk}"

    def __str__(self) -> str:
        return f"Contagem #{self.pk} {self.location.code}"


class StockCountLine(models.Model):
    count = models.ForeignKey(
        StockCount,
        on_delete=models.CASCADE,
        related_name='lines',
    )
    sku = models.CharField(max_length=64, verbose_name=_('SKU'))
    system_quantity = models.IntegerField(verbose_name=_('Quantidade no sistema'))
    counted_quantity = models.PositiveIntegerField(verbose_name=_('Quantidade contada'))
    difference = models.IntegerField(verbose_name=_('Diferença'))
    notes = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Observações'))
    movement = models.OneToOneField(
        'stockledger.Movement',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='count_line',
    )

    class Meta:
        verbose_name = _('Item da contagem')
        verbose_name_plural = _('Itens da contagem')
        ordering = ['id']

    def __str__(self) -> str:
        return f"{self.sku}: {self.system_quantity} → {self.counted_quantity}"

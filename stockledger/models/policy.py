"""
ReorderPolicy model — replenishment assumptions per SKU.

Usage:
    # Lead time and safety stock for one SKU at one store
    ReorderPolicy.objects.create(
        sku='CAFE-500G', location=loja,
        lead_time_days=5, safety_days=2,
    )

    # Check policies (in a periodic task or after stock changes)
    from stockledger.services.alerts import check_alerts
    triggered = check_alerts()
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class ReorderPolicy(models.Model):
    """
    Replenishment parameters for a SKU (optionally per location).

    Empty fields fall back to the STOCKLEDGER defaults. A policy with
    location=None applies to every location that has no specific one.
    """

    sku = models.CharField(max_length=64, db_index=True, verbose_name=_('SKU'))
    location = models.ForeignKey(
        'stockledger.Location',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='reorder_policies',
        verbose_name=_('Local'),
        help_text=_('Vazio = vale para todos os locais'),
    )

    lead_time_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Prazo de reposição (dias)'),
    )
    safety_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Estoque de segurança (dias)'),
    )
    ordering_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Custo por pedido'),
    )
    holding_cost_rate = models.DecimalField(
        max_digits=6,
        decimal_places=4,
        null=True,
        blank=True,
        verbose_name=_('Taxa de custo de manutenção'),
        help_text=_('Fração do custo unitário por ano (ex: 0.2)'),
    )
    unit_cost = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        null=True,
        blank=True,
        verbose_name=_('Custo unitário'),
        help_text=_('Vazio = custo médio ponderado dos recebimentos'),
    )

    is_active = models.BooleanField(default=True, verbose_name=_('Ativo'))
    last_triggered_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Último disparo'),
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Criado em'))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Atualizado em'))

    class Meta:
        verbose_name = _('Política de Reposição')
        verbose_name_plural = _('Políticas de Reposição')
        constraints = [
            models.UniqueConstraint(
                fields=['sku', 'location'],
                name='unique_reorder_policy_per_sku_location',
            ),
        ]
        indexes = [
            models.Index(fields=['is_active'], name='reorder_policy_active_idx'),
        ]

    @classmethod
    def resolve(cls, sku: str, location) -> 'ReorderPolicy | None':
        """Location-specific policy first, then the SKU-wide one."""
        policies = {
            p.location_id: p
            for p in cls.objects.filter(sku=sku).filter(
                models.Q(location=location) | models.Q(location__isnull=True)
            )
        }
        return policies.get(location.pk) or policies.get(None)

    def __str__(self) -> str:
        pos = f" @ {self.location.code}" if self.location else ""
        return f"Reposição: {self.sku}{pos}"

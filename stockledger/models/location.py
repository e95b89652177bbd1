"""
Location model — Where stock exists.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import LocationKind


class Location(models.Model):
    """
    Where stock exists — a store, a back room, a warehouse.

    Locations are stable entities, created during system setup.

    Examples:
        Location.objects.create(code='loja-centro', name='Loja Centro')
        Location.objects.create(code='perdas', name='Perdas', kind=LocationKind.VIRTUAL)
    """

    code = models.SlugField(
        unique=True,
        max_length=50,
        verbose_name=_('Código'),
        help_text=_('Identificador único (ex: loja-centro, deposito)'),
    )
    name = models.CharField(
        max_length=100,
        verbose_name=_('Nome'),
        help_text=_('Nome legível do local'),
    )
    kind = models.CharField(
        max_length=20,
        choices=LocationKind.choices,
        default=LocationKind.PHYSICAL,
        verbose_name=_('Tipo'),
    )
    is_default = models.BooleanField(
        default=False,
        verbose_name=_('Local padrão'),
        help_text=_('Se True, este é o local padrão para recebimentos.'),
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Metadados'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Local')
        verbose_name_plural = _('Locais')
        ordering = ['code']

    def __str__(self) -> str:
        return self.name

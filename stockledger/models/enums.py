"""
Enums for Stockledger models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LocationKind(models.TextChoices):
    """
    Type of location.

    PHYSICAL: Place where product exists in the real world.
              Examples: Loja Centro, Depósito, Vitrine
              Test: "If I go there, will I find the product?" → Yes

    VIRTUAL:  Accounting concept, product doesn't physically exist.
              Examples: Perdas, Em Trânsito, Consumo Interno
              Test: "If I go there, will I find the product?" → No
    """
    PHYSICAL = 'physical', _('Físico')
    VIRTUAL = 'virtual', _('Virtual')


class ReasonCode(models.TextChoices):
    """Why a quantity changed. Every Movement carries exactly one."""
    SALE = 'sale', _('Venda')
    RETURN = 'return', _('Devolução')
    RECEIPT = 'receipt', _('Recebimento')
    ADJUSTMENT = 'adjustment', _('Ajuste')
    TRANSFER_OUT = 'transfer_out', _('Transferência (saída)')
    TRANSFER_IN = 'transfer_in', _('Transferência (entrada)')
    COUNT_CORRECTION = 'count_correction', _('Correção de contagem')


# Reasons whose delta must be negative / positive. The rest accept either sign.
OUTBOUND_REASONS = frozenset({ReasonCode.SALE, ReasonCode.TRANSFER_OUT})
INBOUND_REASONS = frozenset({ReasonCode.RETURN, ReasonCode.RECEIPT, ReasonCode.TRANSFER_IN})
TRANSFER_REASONS = frozenset({ReasonCode.TRANSFER_OUT, ReasonCode.TRANSFER_IN})


class LotStatus(models.TextChoices):
    """Lot lifecycle status."""
    ACTIVE = 'active', _('Ativo')
    DEPLETED = 'depleted', _('Esgotado')
    EXPIRED = 'expired', _('Vencido')


class SerialStatus(models.TextChoices):
    """Serial unit lifecycle status."""
    IN_STOCK = 'in_stock', _('Em estoque')
    RESERVED = 'reserved', _('Reservado')
    SOLD = 'sold', _('Vendido')
    DEFECTIVE = 'defective', _('Defeituoso')
    RETURNED = 'returned', _('Devolvido')


# Allowed serial transitions: current status -> statuses it may move to
SERIAL_TRANSITIONS = {
    SerialStatus.IN_STOCK: {SerialStatus.RESERVED, SerialStatus.SOLD, SerialStatus.DEFECTIVE},
    SerialStatus.RESERVED: {SerialStatus.IN_STOCK, SerialStatus.SOLD, SerialStatus.DEFECTIVE},
    SerialStatus.SOLD: {SerialStatus.RETURNED},
    SerialStatus.RETURNED: {SerialStatus.IN_STOCK, SerialStatus.DEFECTIVE},
    SerialStatus.DEFECTIVE: {SerialStatus.RETURNED, SerialStatus.IN_STOCK},
}


class TransferStatus(models.TextChoices):
    """Transfer order lifecycle status."""
    PENDING = 'pending', _('Pendente')
    COMMITTED = 'committed', _('Efetivada')
    CANCELLED = 'cancelled', _('Cancelada')


class CostingMethod(models.TextChoices):
    """Inventory valuation conventions."""
    FIFO = 'FIFO', _('PEPS (FIFO)')
    WEIGHTED_AVERAGE = 'WEIGHTED_AVERAGE', _('Custo médio ponderado')


class ReorderPriority(models.TextChoices):
    HIGH = 'HIGH', _('Alta')
    MEDIUM = 'MEDIUM', _('Média')
    LOW = 'LOW', _('Baixa')

"""
Exceptions for Stockledger.

All errors are StockError with a structured code for programmatic handling.
The named subclasses pin the code, so callers can catch either the class
or inspect ``e.code``.
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Error carrying a machine-readable code, a message and context data.

    Subclasses provide ``_default_messages`` so the message can be omitted.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.data:
            details = ', '.join(f'{k}={v}' for k, v in self.data.items())
            return f"[{self.code}] {self.message} ({details})"
        return f"[{self.code}] {self.message}"


class StockError(BaseError):
    """
    Structured exception for stock operations.

    Usage:
        try:
            stock.apply_movement('SKU-1', loja, -10, ReasonCode.SALE, 'venda:42')
        except StockError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Só tem {e.available} disponível")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    default_code: str | None = None

    _default_messages = {
        'INSUFFICIENT_STOCK': 'Quantidade insuficiente no estoque',
        'INVALID_REASON': 'Motivo inválido para este movimento',
        'INVALID_QUANTITY': 'Quantidade inválida',
        'INVALID_SKU': 'SKU inválido ou inativo',
        'INVALID_STATUS': 'Status inválido para esta operação',
        'LOT_DEPLETED': 'Quantidade solicitada excede o saldo do lote',
        'LOT_NOT_FOUND': 'Lote não encontrado',
        'DUPLICATE_LOT': 'Lote já cadastrado para este SKU',
        'DUPLICATE_SERIAL': 'Número de série já cadastrado para este SKU',
        'SERIAL_NOT_FOUND': 'Número de série não encontrado',
        'TRANSFER_NOT_FOUND': 'Transferência não encontrada',
        'TRANSFER_VALIDATION': 'Transferência não pode ser efetivada',
        'INVALID_TRANSFER_STATE': 'Transferência não está pendente',
        'UNKNOWN_COSTING_METHOD': 'Método de custeio desconhecido',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        super().__init__(code or self.default_code, message, **data)

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


class InsufficientStock(StockError):
    """Decrement exceeds the quantity available at the balance."""
    default_code = 'INSUFFICIENT_STOCK'


class InvalidReason(StockError):
    """Reason code is not allowed here, or a field it requires is missing."""
    default_code = 'INVALID_REASON'


class LotDepletionError(StockError):
    default_code = 'LOT_DEPLETED'


class DuplicateSerialError(StockError):
    default_code = 'DUPLICATE_SERIAL'


class TransferValidationError(StockError):
    """Transfer failed validation (at request time or commit-time re-check)."""
    default_code = 'TRANSFER_VALIDATION'


class InvalidTransferState(StockError):
    default_code = 'INVALID_TRANSFER_STATE'


class UnknownCostingMethod(StockError):
    default_code = 'UNKNOWN_COSTING_METHOD'

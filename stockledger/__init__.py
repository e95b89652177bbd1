"""
Django Stockledger — Razão de estoque multi-loja.

Saldos por local, movimentos imutáveis, lotes e números de série,
transferências em duas fases, custeio FIFO / médio e reposição.

Uso:
    from stockledger import stock, StockError

    stock.receive_stock('CAFE-500G', loja, 100, Decimal('2.00'))
    stock.apply_movement('CAFE-500G', loja, -30, ReasonCode.SALE, 'venda:42')
    stock.value_inventory('CAFE-500G', loja).total_value  # 140.00
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'stock':
        from stockledger.service import Stock
        return Stock
    elif name == 'StockError':
        from stockledger.exceptions import StockError
        return StockError
    elif name == 'ReasonCode':
        from stockledger.models.enums import ReasonCode
        return ReasonCode
    elif name == 'Location':
        from stockledger.models.location import Location
        return Location
    elif name == 'StockBalance':
        from stockledger.models.balance import StockBalance
        return StockBalance
    elif name == 'Movement':
        from stockledger.models.movement import Movement
        return Movement
    elif name == 'Lot':
        from stockledger.models.lot import Lot
        return Lot
    elif name == 'SerialUnit':
        from stockledger.models.serial import SerialUnit
        return SerialUnit
    elif name == 'TransferOrder':
        from stockledger.models.transfer import TransferOrder
        return TransferOrder
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'stock',
    'StockError',
    'ReasonCode',
    'Location',
    'StockBalance',
    'Movement',
    'Lot',
    'SerialUnit',
    'TransferOrder',
]

__version__ = '0.1.0'

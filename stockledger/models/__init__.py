"""
Stockledger Models.

Core models for the stock ledger:
- Location: Where stock exists
- StockBalance: Quantity cache per (sku, location)
- Movement: Immutable ledger of changes
- Lot / LotLocation: Batch provenance and FIFO cost layers
- SerialUnit / SerialEvent: Individually tracked units
- TransferOrder / TransferLine: Two-phase moves between locations
- StockCount / StockCountLine: Physical count sessions
- ReorderPolicy: Replenishment assumptions per SKU
"""

from stockledger.models.balance import StockBalance
from stockledger.models.count import StockCount, StockCountLine
from stockledger.models.enums import (
    CostingMethod,
    LocationKind,
    LotStatus,
    ReasonCode,
    ReorderPriority,
    SerialStatus,
    TransferStatus,
)
from stockledger.models.location import Location
from stockledger.models.lot import Lot, LotLocation
from stockledger.models.movement import Movement
from stockledger.models.policy import ReorderPolicy
from stockledger.models.serial import SerialEvent, SerialUnit
from stockledger.models.transfer import TransferLine, TransferOrder

__all__ = [
    'LocationKind',
    'ReasonCode',
    'LotStatus',
    'SerialStatus',
    'TransferStatus',
    'CostingMethod',
    'ReorderPriority',
    'Location',
    'StockBalance',
    'Movement',
    'Lot',
    'LotLocation',
    'SerialUnit',
    'SerialEvent',
    'TransferOrder',
    'TransferLine',
    'StockCount',
    'StockCountLine',
    'ReorderPolicy',
]

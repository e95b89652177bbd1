"""
Stock services — modular organization of stock operations.

Each class groups one concern; the Stock facade composes them all:
    from stockledger.services import StockQueries, StockMovements, StockTransfers
"""

from stockledger.services.lots import StockLots
from stockledger.services.movements import StockMovements
from stockledger.services.planning import StockPlanning
from stockledger.services.queries import StockQueries
from stockledger.services.transfers import StockTransfers
from stockledger.services.valuation import StockValuation

__all__ = [
    'StockQueries',
    'StockMovements',
    'StockLots',
    'StockTransfers',
    'StockValuation',
    'StockPlanning',
]

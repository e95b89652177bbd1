"""
Stock Service — The single public interface for all stock operations.

Usage:
    from stockledger import stock, StockError

    stock.receive_stock('CAFE-500G', loja, 100, Decimal('2.00'))
    stock.apply_movement('CAFE-500G', loja, -30, ReasonCode.SALE, 'venda:42')
    stock.value_inventory('CAFE-500G', loja, 'FIFO').total_value  # 140.00
"""

from stockledger.services.alerts import check_alerts
from stockledger.services.lots import StockLots
from stockledger.services.movements import StockMovements
from stockledger.services.planning import StockPlanning
from stockledger.services.queries import StockQueries
from stockledger.services.transfers import StockTransfers
from stockledger.services.valuation import StockValuation


class Stock(
    StockQueries,
    StockMovements,
    StockLots,
    StockTransfers,
    StockValuation,
    StockPlanning,
):
    """
    Single interface for all stock operations.

    Parameter convention: (sku, location, quantity, ...)

    IMPORTANT: All state-changing methods use atomic transactions
    with appropriate locking. See each method's docstring.
    """

    @classmethod
    def check_alerts(cls, location=None):
        return check_alerts(location)

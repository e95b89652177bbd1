"""
Stockledger configuration.

Usage in settings.py:
    STOCKLEDGER = {
        "SKU_VALIDATOR": "catalog.adapters.sku_validator.CatalogSkuValidator",
        "VALIDATE_INPUT_SKUS": True,
        "DEFAULT_LEAD_TIME_DAYS": 7,
        "DEFAULT_SAFETY_DAYS": 3,
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings


@dataclass
class StockledgerSettings:
    """Stockledger configuration settings."""

    # SKU validation backend (dotted path)
    SKU_VALIDATOR: str = ""

    # Validate SKUs via external backend before stock operations
    VALIDATE_INPUT_SKUS: bool = True

    # Replenishment defaults (overridden per SKU by ReorderPolicy)
    DEFAULT_LOOKBACK_DAYS: int = 90
    DEFAULT_LEAD_TIME_DAYS: int = 7
    DEFAULT_SAFETY_DAYS: int = 3
    DEFAULT_ORDERING_COST: Decimal = Decimal('50')
    DEFAULT_HOLDING_COST_RATE: Decimal = Decimal('0.2')

    # Window used by get_expiring_lots() when no threshold is given
    EXPIRY_THRESHOLD_DAYS: int = 30

    # Seconds the cached reorder recommendations stay valid
    REORDER_CACHE_TIMEOUT: int = 3600

    # Re-check the reorder policy after every posted movement
    ALERT_ON_MOVEMENT: bool = True


def get_stockledger_settings() -> StockledgerSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STOCKLEDGER", {})
    return StockledgerSettings(**{
        k: v for k, v in user_settings.items()
        if k in StockledgerSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stockledger_settings(), name)


stockledger_settings = _LazySettings()

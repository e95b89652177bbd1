"""
Stockledger Adapters.

Implementations of protocols for external systems.
"""

from stockledger.adapters.catalog import (
    catalog_info,
    get_sku_validator,
    reset_sku_validator,
    validate_input_skus,
)

__all__ = [
    "catalog_info",
    "get_sku_validator",
    "reset_sku_validator",
    "validate_input_skus",
]

"""
Stockledger Protocols.

Defines interfaces for external system integration.
"""

from stockledger.protocols.sku import (
    SkuInfo,
    SkuValidationResult,
    SkuValidator,
)

__all__ = [
    "SkuInfo",
    "SkuValidationResult",
    "SkuValidator",
]

"""
Catalog protocol — how the ledger asks an external catalog about SKUs.

The ledger never owns product data. Receipts, movements and transfer
requests check their SKUs through whatever SkuValidator is configured in
STOCKLEDGER['SKU_VALIDATOR']; the replenishment planner reads cost_price
from it when nothing better is known.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class SkuValidationResult:
    """
    Outcome of a catalog lookup.

    A SKU may be found (valid=True) and still be rejected by the ledger
    when is_active is False.
    """

    valid: bool
    sku: str
    message: str | None = None
    product_name: str | None = None
    is_active: bool = True
    error_code: str | None = None  # not_found | inactive


@dataclass(frozen=True)
class SkuInfo:
    """Product data the ledger reads from the catalog."""

    sku: str
    name: str
    is_active: bool
    unit: str  # un, cx, kg
    cost_price: Decimal | None = None


@runtime_checkable
class SkuValidator(Protocol):
    """
    What a catalog must answer for the ledger.

    Implementations provide:
    - Existence and active checks before stock is moved
    - Product data, including the cost price used by the planner
    - Search for SKU pickers in admin forms
    """

    def validate_sku(self, sku: str) -> SkuValidationResult:
        """
        Look up one SKU before it is moved.

        Args:
            sku: Product code

        Returns:
            SkuValidationResult; valid=False when the catalog doesn't know it
        """
        ...

    def validate_skus(self, skus: list[str]) -> dict[str, SkuValidationResult]:
        """
        Look up several SKUs in one round trip.

        Args:
            skus: Product codes (a transfer's lines, for instance)

        Returns:
            Dict[sku, SkuValidationResult] with every requested SKU present,
            found or not
        """
        ...

    def get_sku_info(self, sku: str) -> SkuInfo | None:
        """
        Product data for a SKU.

        Args:
            sku: Product code

        Returns:
            SkuInfo, or None when the catalog doesn't know the SKU
        """
        ...

    def search_skus(
        self,
        query: str,
        limit: int = 20,
        include_inactive: bool = False,
    ) -> list[SkuInfo]:
        """
        Match SKUs by code or name.

        Args:
            query: Search term
            limit: Maximum results
            include_inactive: Include SKUs the catalog has retired

        Returns:
            List of SkuInfo
        """
        ...

"""
Catalog stand-in for development and tests.

Any SKU string is accepted as an active product named after itself, in
units, with no cost price. Enable with:

    STOCKLEDGER = {
        "SKU_VALIDATOR": "stockledger.adapters.noop.NoopSkuValidator",
    }

Point SKU_VALIDATOR at a real catalog adapter in production: this one lets
typos create balances.
"""

from __future__ import annotations

from stockledger.protocols.sku import SkuInfo, SkuValidationResult


class NoopSkuValidator:
    """
    SkuValidator that knows every SKU and nothing about it.

    Useful for:

    - Running the ledger before a catalog is wired in
    - Tests that don't care which products exist
    - Subclassing in tests that need one answer changed (a cost price,
      an inactive SKU)
    """

    def validate_sku(self, sku: str) -> SkuValidationResult:
        """
        Accept any SKU.

        Args:
            sku: Product code (any string).

        Returns:
            SkuValidationResult with valid=True, named after the SKU.
        """
        return SkuValidationResult(valid=True, sku=sku, product_name=sku)

    def validate_skus(self, skus: list[str]) -> dict[str, SkuValidationResult]:
        """
        Accept every SKU in the list.

        Args:
            skus: Product codes.

        Returns:
            Dict mapping each SKU to validate_sku(sku).
        """
        return {sku: self.validate_sku(sku) for sku in skus}

    def get_sku_info(self, sku: str) -> SkuInfo | None:
        """
        Placeholder product data.

        Args:
            sku: Product code.

        Returns:
            SkuInfo named after the SKU, in units, with no cost price, so
            the planner falls back to received costs.
        """
        return SkuInfo(sku=sku, name=sku, is_active=True, unit="un")

    def search_skus(
        self,
        query: str,
        limit: int = 20,
        include_inactive: bool = False,
    ) -> list[SkuInfo]:
        """
        Nothing to search without a catalog.

        Args:
            query: Search term (ignored).
            limit: Maximum results (ignored).
            include_inactive: Include retired SKUs (ignored).

        Returns:
            Empty list.
        """
        return []

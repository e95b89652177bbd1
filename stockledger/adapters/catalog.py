"""
Catalog access for the ledger.

The validator class named in STOCKLEDGER['SKU_VALIDATOR'] is imported once
per process and shared:

    from stockledger.adapters import get_sku_validator

    get_sku_validator().validate_sku("CAFE-500G")

A missing or unimportable SKU_VALIDATOR raises ImproperlyConfigured on first use.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from stockledger.conf import stockledger_settings
from stockledger.exceptions import StockError
from stockledger.protocols.sku import SkuInfo, SkuValidator

logger = logging.getLogger(__name__)


_lock = threading.Lock()
_sku_validator: SkuValidator | None = None


def _load_validator(path: str) -> SkuValidator:
    if not path:
        raise ImproperlyConfigured(
            "Set STOCKLEDGER['SKU_VALIDATOR'] to a catalog adapter, "
            "e.g. 'stockledger.adapters.noop.NoopSkuValidator'."
        )
    try:
        validator_class = import_string(path)
    except ImportError as e:
        raise ImproperlyConfigured(f"Cannot import SKU validator '{path}': {e}") from e
    logger.debug("stock.catalog.loaded", extra={"validator": path})
    return validator_class()


def get_sku_validator() -> SkuValidator:
    """
    Shared validator instance, created on first call.

    Raises:
        ImproperlyConfigured: SKU_VALIDATOR unset or not importable
    """
    global _sku_validator

    if _sku_validator is None:
        with _lock:
            if _sku_validator is None:
                _sku_validator = _load_validator(stockledger_settings.SKU_VALIDATOR)
    return _sku_validator


def reset_sku_validator() -> None:
    """Drop the shared instance so the next call re-reads settings."""
    global _sku_validator
    _sku_validator = None


def validate_input_skus(skus: Iterable[str]) -> None:
    """
    Reject unknown or inactive SKUs before a stock operation.

    Does nothing when VALIDATE_INPUT_SKUS is off.

    Raises:
        StockError('INVALID_SKU'): for the first rejected SKU, in sorted order
    """
    if not stockledger_settings.VALIDATE_INPUT_SKUS:
        return

    unique = sorted(set(skus))
    results = get_sku_validator().validate_skus(unique)
    for sku in unique:
        result = results.get(sku)
        if result is None:
            raise StockError('INVALID_SKU', sku=sku, reason='not_found')
        if not (result.valid and result.is_active):
            raise StockError('INVALID_SKU', sku=sku, reason=result.error_code)


def catalog_info(sku: str) -> SkuInfo | None:
    """Catalog data for a SKU, or None when no catalog is configured."""
    if not stockledger_settings.SKU_VALIDATOR:
        return None
    return get_sku_validator().get_sku_info(sku)

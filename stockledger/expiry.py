"""
Expiry rules for lots — isolated, testable, reusable.

A lot with an expiry_date can be sold up to and including that day.
Lots without an expiry_date never expire.

Examples:
    - Leite (expiry 2026-03-10): sellable on 03-10, expired on 03-11
    - Parafuso (expiry None): never expires
"""

from datetime import date, timedelta


def is_expired(lot, today: date | None = None) -> bool:
    """Is the lot past its expiry date on the given day?"""
    if lot.expiry_date is None:
        return False
    return (today or date.today()) > lot.expiry_date


def days_until_expiry(lot, today: date | None = None) -> int | None:
    """Days left before the lot expires (negative once expired), None if it never does."""
    if lot.expiry_date is None:
        return None
    return (lot.expiry_date - (today or date.today())).days


def expiry_cutoff(threshold_days: int, today: date | None = None) -> date:
    """Last expiry date that still counts as 'expiring within threshold_days'."""
    return (today or date.today()) + timedelta(days=threshold_days)


def filter_expiring_lots(lots, threshold_days: int, today: date | None = None):
    """
    Filter a Lot queryset to lots with stock expiring within the threshold.

    Already-expired lots with remaining stock are included: they are the
    most urgent ones for reporting.
    """
    return lots.expiring_before(expiry_cutoff(threshold_days, today)).order_by(
        'expiry_date', 'lot_number'
    )


def filter_expired_lots(lots, today: date | None = None):
    """Filter a Lot queryset to lots whose expiry date has passed."""
    return lots.filter(
        expiry_date__isnull=False,
        expiry_date__lt=today or date.today(),
    )

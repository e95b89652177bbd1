"""
Stock alerts — evaluate reorder policies and flag the ones that trip.

Usage:
    from stockledger.services.alerts import check_alerts

    # Run periodically (celery beat, cron) for a full sweep
    triggered = check_alerts()
    # Returns list of (ReorderPolicy, ReorderPlan) tuples

Every posted movement also re-checks its own balance (check_low_stock),
unless STOCKLEDGER['ALERT_ON_MOVEMENT'] is off.
"""

import logging

from django.utils import timezone

from stockledger.models.balance import StockBalance
from stockledger.models.policy import ReorderPolicy
from stockledger.services.planning import ReorderPlan, StockPlanning

logger = logging.getLogger('stockledger')

# Balance metadata flag: an alert fired and stock has not recovered since
ALERTED = 'reorder_alerted'


def _policy_locations(policy, location=None):
    """Locations a policy governs: its own, or every location holding the SKU."""
    if policy.location_id is not None:
        if location is not None and policy.location_id != location.pk:
            return []
        return [policy.location]

    balances = StockBalance.objects.for_sku(policy.sku).select_related('location')
    if location is not None:
        balances = balances.at_location(location)

    # A location-specific policy takes precedence over the SKU-wide one
    return [
        b.location for b in balances.order_by('location__code')
        if ReorderPolicy.resolve(policy.sku, b.location).pk == policy.pk
    ]


def _trigger(policy, location, plan, now) -> None:
    policy.last_triggered_at = now
    policy.save(update_fields=['last_triggered_at'])
    logger.warning(
        "stock.alert.triggered",
        extra={
            "policy_id": policy.pk,
            "sku": policy.sku,
            "location": location.code,
            "on_hand": plan.quantity_on_hand,
            "reorder_point": plan.reorder_point,
            "priority": plan.priority,
        },
    )


def check_alerts(location=None) -> list[tuple[ReorderPolicy, ReorderPlan]]:
    """
    Check all active reorder policies and return those that are triggered.

    A policy is triggered when the quantity on hand is at or below the
    reorder point at a location it governs. The sweep reports every
    triggered policy, whether or not a movement already alerted on it.

    Args:
        location: Optional location to restrict the check to (None = all).

    Returns:
        List of (policy, plan) tuples for triggered policies.
    """
    triggered = []
    now = timezone.now()

    for policy in ReorderPolicy.objects.filter(is_active=True).select_related('location').order_by('sku', 'pk'):
        for loc in _policy_locations(policy, location):
            plan = StockPlanning.calculate_reorder_point(policy.sku, loc)
            if not plan.needs_reorder:
                continue

            _trigger(policy, loc, plan, now)
            triggered.append((policy, plan))

    return triggered


def check_low_stock(balance: StockBalance) -> ReorderPlan | None:
    """
    Re-check the reorder policy of a balance that just moved.

    Alerts once when stock reaches the reorder point. The balance keeps
    the ALERTED flag so later movements stay quiet until stock is back
    above the reorder point, which clears it.

    Args:
        balance: Locked balance, refreshed after the movement

    Returns:
        The plan when an alert fired, else None
    """
    policy = ReorderPolicy.resolve(balance.sku, balance.location)
    if policy is None or not policy.is_active:
        return None

    plan = StockPlanning.calculate_reorder_point(balance.sku, balance.location)
    if plan.needs_reorder == bool(balance.metadata.get(ALERTED)):
        return None

    metadata = {k: v for k, v in balance.metadata.items() if k != ALERTED}
    if plan.needs_reorder:
        metadata[ALERTED] = True
    StockBalance.objects.filter(pk=balance.pk).update(metadata=metadata)
    balance.metadata = metadata

    if not plan.needs_reorder:
        return None
    _trigger(policy, balance.location, plan, timezone.now())
    return plan

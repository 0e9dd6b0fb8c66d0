"""Share conservation checks run before an allocation pass is written."""

import logging

from src.ipo_allocation.domain.models import AllocationResult
from src.ipo_common.enums import SubscriptionStatus

logger = logging.getLogger(__name__)

_TERMINAL = (SubscriptionStatus.ALLOCATED.value, SubscriptionStatus.REJECTED.value)


def verify_allocation(result: AllocationResult) -> None:
    """Raise AssertionError if the pass would break share or amount accounting.

    - sum(allocation_quantity) == allocated_shares <= total_shares
    - allocated_shares + remaining_shares == total_shares
    - every decision is terminal; rejected ones carry zero quantity and amount
    - no fill exceeds its request; amount == quantity * price
    """
    filled = sum(d.allocation_quantity for d in result.decisions)
    assert filled == result.allocated_shares, (
        f"allocated sum {filled} != allocated_shares {result.allocated_shares}"
    )
    assert filled <= result.total_shares, (
        f"allocated sum {filled} exceeds total_shares {result.total_shares}"
    )
    assert result.allocated_shares + result.remaining_shares == result.total_shares, (
        f"allocated {result.allocated_shares} + remaining {result.remaining_shares} "
        f"!= total {result.total_shares}"
    )

    for d in result.decisions:
        assert d.status in _TERMINAL, f"subscription {d.subscription_id} left in {d.status}"
        assert 0 <= d.allocation_quantity <= d.requested_quantity, (
            f"subscription {d.subscription_id}: filled {d.allocation_quantity} "
            f"of {d.requested_quantity}"
        )
        assert d.allocation_amount == d.allocation_quantity * d.price_per_share, (
            f"subscription {d.subscription_id}: amount {d.allocation_amount} "
            f"!= {d.allocation_quantity} * {d.price_per_share}"
        )
        if d.status == SubscriptionStatus.REJECTED:
            assert d.allocation_quantity == 0, (
                f"rejected subscription {d.subscription_id} has quantity"
            )

    logger.debug(
        "Allocation invariants OK: offering=%s, allocated=%d, remaining=%d",
        result.offering_id,
        result.allocated_shares,
        result.remaining_shares,
    )

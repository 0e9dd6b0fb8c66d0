"""First-come-first-served share allocation.

Pure function over already-loaded subscriptions; no DB access. Subscriptions
are served in (created_at, id) order. Each one receives
``min(requested, remaining)`` shares while the pool lasts; once the pool is
empty every later subscription is rejected with zero quantity and amount.
A request larger than the pool still gets whatever is left.
"""

from collections.abc import Iterable

from src.ipo_allocation.domain.models import AllocationDecision
from src.ipo_common.enums import SubscriptionStatus
from src.ipo_subscription.domain.models import Subscription


def allocate_fcfs(
    total_shares: int, subscriptions: Iterable[Subscription]
) -> tuple[list[AllocationDecision], int]:
    """Return (decisions in service order, shares left in the pool)."""
    if total_shares < 0:
        raise ValueError(f"total_shares must be >= 0, got {total_shares}")

    queue = sorted(subscriptions, key=lambda s: (s.created_at, s.id))
    remaining = total_shares
    decisions: list[AllocationDecision] = []

    for sub in queue:
        if remaining <= 0:
            decisions.append(
                AllocationDecision(
                    subscription_id=sub.id,
                    user_id=sub.user_id,
                    requested_quantity=sub.quantity,
                    price_per_share=sub.price_per_share,
                    status=SubscriptionStatus.REJECTED.value,
                    allocation_quantity=0,
                    allocation_amount=0,
                )
            )
            continue

        filled = min(sub.quantity, remaining)
        decisions.append(
            AllocationDecision(
                subscription_id=sub.id,
                user_id=sub.user_id,
                requested_quantity=sub.quantity,
                price_per_share=sub.price_per_share,
                status=SubscriptionStatus.ALLOCATED.value,
                allocation_quantity=filled,
                allocation_amount=filled * sub.price_per_share,
            )
        )
        remaining -= filled

    return decisions, remaining

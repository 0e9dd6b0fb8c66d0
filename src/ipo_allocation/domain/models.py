"""Allocation results — pure dataclasses."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class AllocationDecision:
    subscription_id: int
    user_id: str
    requested_quantity: int
    price_per_share: int             # cents
    status: str                      # 'allocated' or 'rejected'
    allocation_quantity: int
    allocation_amount: int           # cents

    @property
    def is_partial(self) -> bool:
        return 0 < self.allocation_quantity < self.requested_quantity


@dataclass
class AllocationResult:
    offering_id: int
    total_shares: int
    allocated_shares: int
    remaining_shares: int
    decisions: list[AllocationDecision] = field(default_factory=list)

    @property
    def allocated_count(self) -> int:
        return sum(1 for d in self.decisions if d.allocation_quantity > 0)

    @property
    def rejected_count(self) -> int:
        return sum(1 for d in self.decisions if d.allocation_quantity == 0)

"""Tick outcome models — pure dataclasses."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.ipo_common.enums import TickStatus


@dataclass
class TickReport:
    """Outcome of one LifecycleManager.tick() call."""
    started_at: datetime
    promoted: list[int] = field(default_factory=list)
    closed: list[int] = field(default_factory=list)
    allocated: list[int] = field(default_factory=list)
    skipped: dict[int, str] = field(default_factory=dict)   # allocation conflicts
    failed: dict[int, str] = field(default_factory=dict)    # retried next tick
    deferred: list[int] = field(default_factory=list)       # tick budget exhausted
    error: str | None = None                                # transition pass failure
    duration_ms: int = 0

    @property
    def status(self) -> str:
        progressed = bool(self.promoted or self.closed or self.allocated)
        if self.error is not None or self.failed:
            return TickStatus.PARTIAL.value if progressed else TickStatus.ERROR.value
        if self.deferred:
            return TickStatus.PARTIAL.value
        return TickStatus.SUCCESS.value

    @property
    def is_noop(self) -> bool:
        return not (
            self.promoted
            or self.closed
            or self.allocated
            or self.skipped
            or self.failed
            or self.deferred
            or self.error
        )

    def details(self) -> dict[str, Any]:
        return {
            "promoted": self.promoted,
            "closed": self.closed,
            "allocated": self.allocated,
            "skipped": {str(k): v for k, v in self.skipped.items()},
            "failed": {str(k): v for k, v in self.failed.items()},
            "deferred": self.deferred,
            "error": self.error,
        }


@dataclass
class TickLog:
    id: int
    job_name: str
    status: str
    promoted_count: int
    closed_count: int
    allocated_count: int
    failed_count: int
    deferred_count: int
    details: dict[str, Any]
    execution_time_ms: int
    started_at: datetime
    created_at: datetime | None = None

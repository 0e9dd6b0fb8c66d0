"""Global enums — values must match the DB CHECK constraints exactly."""

from enum import Enum


class OfferingStatus(str, Enum):
    """Stored status label of an offering.

    ``ALLOCATED`` is never written to ``offerings.status``: a closed offering
    whose allocation finished keeps the ``closed`` label and is reported as
    allocated through ``Offering.phase``.
    """
    UPCOMING = "upcoming"
    ACTIVE = "active"
    CLOSED = "closed"
    ALLOCATED = "allocated"


class SubscriptionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ALLOCATED = "allocated"
    REJECTED = "rejected"


# pending and confirmed both hold a reservation and both take part in allocation
RESERVED_SUBSCRIPTION_STATUSES: tuple[str, ...] = (
    SubscriptionStatus.PENDING.value,
    SubscriptionStatus.CONFIRMED.value,
)


class DepositStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Exchange(str, Enum):
    BIST = "BIST"
    NASDAQ = "NASDAQ"
    NYSE = "NYSE"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class TickStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"

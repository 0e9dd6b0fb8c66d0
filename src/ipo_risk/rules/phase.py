from datetime import datetime

from src.ipo_common.enums import OfferingStatus
from src.ipo_common.errors import PhaseError
from src.ipo_offering.domain.models import Offering


def check_offering_open(offering: Offering, now: datetime) -> None:
    """Raise PhaseError unless the offering is active and ``now`` is inside its window."""
    if offering.status != OfferingStatus.ACTIVE:
        raise PhaseError(offering.id, f"status is {offering.phase}")
    if now < offering.start_date:
        raise PhaseError(offering.id, "subscription window has not opened")
    if now > offering.end_date:
        raise PhaseError(offering.id, "subscription window has ended")

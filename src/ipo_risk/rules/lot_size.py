from src.ipo_common.errors import LotSizeError
from src.ipo_offering.domain.models import Offering


def check_lot_size(offering: Offering, quantity: int) -> None:
    """Raise LotSizeError(4002) unless quantity is a positive multiple of the lot size."""
    if quantity <= 0 or quantity % offering.lot_size != 0:
        raise LotSizeError(quantity, offering.lot_size)

from src.ipo_common.errors import PriceOutOfBandError
from src.ipo_offering.domain.models import Offering


def check_price_band(offering: Offering, price: int) -> None:
    """Raise PriceOutOfBandError(4001) if price is outside [price_min, price_max]."""
    if not (offering.price_min <= price <= offering.price_max):
        raise PriceOutOfBandError(price, offering.price_min, offering.price_max)

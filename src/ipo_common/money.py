"""Integer money helpers.

All prices, amounts and balances are int minor units (cents). No float, no Decimal.
"""


def cents_to_display(cents: int) -> str:
    """Format cents for messages: 40000 -> '400.00', -1200 -> '-12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-{abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"{cents // 100:,}.{cents % 100:02d}"


def subscription_amount(quantity: int, price_per_share: int) -> int:
    """totalAmount of a subscription: quantity x price, exact."""
    return quantity * price_per_share

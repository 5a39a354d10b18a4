from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce ``value`` to a Decimal rounded to cents.

    Floats go through ``str`` so 0.1 stays 0.10 instead of picking up binary noise.
    """
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_price(value) -> str:
    """Format an amount the way the storefront shows it, e.g. ``R$ 1.234,50``."""
    amount = to_money(value)
    text = f"{amount:,.2f}"
    return "R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")

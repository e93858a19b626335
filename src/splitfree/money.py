"""Currency rounding and display helpers."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
}


def round_currency(amount: float) -> float:
    """
    Round an amount to cents.

    Uses ROUND_HALF_UP on the shortest decimal representation of the float,
    so 1.005 rounds to 1.01 rather than to the binary neighbour 1.00.

    Args:
        amount: Amount in currency units

    Returns:
        Amount rounded to 2 decimal places
    """
    cents = Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)
    return float(cents)


def format_amount(amount: float, currency: str = "USD") -> str:
    """
    Format an amount for display, e.g. $1,234.50 or -€3.20.

    Unknown currency codes are shown as a prefix: "CHF 12.00".
    """
    code = currency.upper()
    value = round_currency(amount)
    sign = "-" if value < 0 else ""
    symbol = _CURRENCY_SYMBOLS.get(code)
    if code == "JPY":
        body = f"{abs(value):,.0f}"
    else:
        body = f"{abs(value):,.2f}"
    if symbol:
        return f"{sign}{symbol}{body}"
    return f"{sign}{code} {body}"


def to_percent(fraction: float) -> int:
    """Convert a fraction to a whole percentage, rounding half up (0.125 -> 13)."""
    percent = Decimal(str(fraction)) * 100
    return int(percent.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

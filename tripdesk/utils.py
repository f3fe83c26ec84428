"""Utility functions for the application"""
from decimal import Decimal, ROUND_HALF_UP

_CENT = Decimal("0.01")


def round2(value) -> float:
    """Round half-up to two decimals; None and blanks count as 0."""
    if value in (None, ""):
        return 0.0
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def to_number(value) -> float:
    """Coerce a form value to float, treating None and '' as 0."""
    if value in (None, ""):
        return 0.0
    return float(value)


def fmt_qty(value) -> str:
    """Format a bird count or weight for messages: 300 -> '300', 450.5 -> '450.5'."""
    rounded = round2(value)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.2f}".rstrip("0")


def fmt_money(value, currency: str = "Rs.") -> str:
    return f"{currency} {round2(value):,.2f}"


_ONES = ["", "ONE", "TWO", "THREE", "FOUR", "FIVE", "SIX", "SEVEN", "EIGHT", "NINE",
         "TEN", "ELEVEN", "TWELVE", "THIRTEEN", "FOURTEEN", "FIFTEEN", "SIXTEEN",
         "SEVENTEEN", "EIGHTEEN", "NINETEEN"]
_TENS = ["", "", "TWENTY", "THIRTY", "FORTY", "FIFTY", "SIXTY", "SEVENTY", "EIGHTY", "NINETY"]

# Indian grouping, largest first
_UNITS = [(10000000, "CRORE"), (100000, "LAKH"), (1000, "THOUSAND")]


def _below_thousand(n: int) -> str:
    words = []
    if n >= 100:
        words.append(_ONES[n // 100] + " HUNDRED")
        n %= 100
    if n >= 20:
        words.append(_TENS[n // 10] + (" " + _ONES[n % 10] if n % 10 else ""))
    elif n:
        words.append(_ONES[n])
    return " ".join(words)


def _integer_words(n: int) -> str:
    if n == 0:
        return "ZERO"
    parts = []
    for size, name in _UNITS:
        if n >= size:
            # crores may themselves exceed a thousand
            head = _integer_words(n // size) if n // size >= 1000 else _below_thousand(n // size)
            parts.append(f"{head} {name}")
            n %= size
    if n:
        parts.append(_below_thousand(n))
    return " ".join(parts)


def amount_in_words(amount) -> str:
    """Convert a rupee amount to words using lakh/crore grouping.

    1250.5 -> 'RUPEES ONE THOUSAND TWO HUNDRED FIFTY AND FIFTY PAISE ONLY'
    """
    value = Decimal(str(round2(amount)))
    prefix = ""
    if value < 0:
        prefix = "MINUS "
        value = -value
    rupees = int(value)
    paise = int((value - rupees) * 100)
    text = f"{prefix}RUPEES {_integer_words(rupees)}"
    if paise:
        text += f" AND {_below_thousand(paise)} PAISE"
    return text + " ONLY"

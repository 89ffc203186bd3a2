"""
Monetary precision helpers.

Key Principles:
1. NEVER use float for money
2. Quantize to the currency's minor unit with ROUND_HALF_EVEN (banker's rounding)
3. Quantize once per stored amount, not on every intermediate step
"""

from decimal import Decimal, ROUND_HALF_EVEN, getcontext
from typing import Union

# Set high precision for intermediate calculations
getcontext().prec = 28

# Currency minor unit exponents (how many decimal places)
CURRENCY_EXPONENT = {
    "INR": 2,  # Indian Rupee (paise)
    "USD": 2,  # United States Dollar (cents)
    "EUR": 2,  # Euro (cents)
    "GBP": 2,  # British Pound (pence)
    "JPY": 0,  # Japanese Yen (no subunit)
    "KWD": 3,  # Kuwaiti Dinar (fils)
}

ZERO = Decimal("0.00")


def currency_exponent(currency: str) -> int:
    """
    Get the number of decimal places for a currency.

    Examples:
        >>> currency_exponent("INR")
        2
        >>> currency_exponent("JPY")
        0
    """
    return CURRENCY_EXPONENT.get(currency.upper(), 2)


def quantize_decimal(currency: str) -> Decimal:
    """Smallest unit of the currency, e.g. Decimal('0.01') for INR."""
    return Decimal(10) ** -currency_exponent(currency)


def to_decimal(amount: Union[Decimal, str, int, float]) -> Decimal:
    """
    Coerce any numeric input to Decimal without float artefacts.

    Examples:
        >>> to_decimal(0.1)
        Decimal('0.1')
    """
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        # Convert float to string first to avoid precision issues
        amount = str(amount)
    return Decimal(amount)


def quantize(currency: str, amount: Union[Decimal, str, int, float]) -> Decimal:
    """
    Round to currency decimals using banker's rounding (ROUND_HALF_EVEN).

    Examples:
        >>> quantize("INR", "10.127")
        Decimal('10.13')
        >>> quantize("INR", "10.125")
        Decimal('10.12')  # Banker's rounding
        >>> quantize("JPY", "1234.56")
        Decimal('1235')
    """
    return to_decimal(amount).quantize(quantize_decimal(currency), rounding=ROUND_HALF_EVEN)

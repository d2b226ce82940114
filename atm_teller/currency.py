"""
Amount Handling Module

Parsing, rounding and display of monetary amounts. NEVER uses float for
monetary values: everything is Decimal, persisted as a decimal string.
"""

from decimal import (
    Context, Decimal, DecimalException, Inexact, InvalidOperation, Overflow,
    ROUND_HALF_UP, getcontext
)
from typing import Any, Union
import re

from .exceptions import InvalidAmount

# Set global decimal context for financial precision
getcontext().prec = 28

ZERO = Decimal('0')

# Ledger arithmetic must never round away money
_EXACT = Context(prec=28, rounding=ROUND_HALF_UP, traps=[Inexact, InvalidOperation, Overflow])

# Optional leading currency symbol and thousands separators are tolerated
_AMOUNT_PATTERN = re.compile(r'^\$?(\d{1,3}(,\d{3})+|\d*)(\.\d+)?$')


def quantize(value: Decimal, precision: int = 2) -> Decimal:
    """
    Round a Decimal to the given number of places

    Args:
        value: Decimal to round
        precision: Number of decimal places

    Returns:
        Properly rounded Decimal
    """
    return value.quantize(
        Decimal('0.1') ** precision,
        rounding=ROUND_HALF_UP
    )


def add_exact(a: Decimal, b: Decimal) -> Decimal:
    """
    Add two amounts without losing digits

    Raises:
        InvalidAmount: If the sum cannot be held exactly at ledger precision
    """
    try:
        return _EXACT.add(a, b)
    except DecimalException:
        raise InvalidAmount(b)


def to_decimal(value: Union[str, int, Decimal, None]) -> Decimal:
    """Convert a stored value back to Decimal; missing values read as zero"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def parse_amount(value: Any, precision: int = 2) -> Decimal:
    """
    Parse user input into a positive amount

    Args:
        value: String or number entered by the user
        precision: Number of decimal places to round to

    Returns:
        Positive Decimal rounded to `precision` places

    Raises:
        InvalidAmount: If the value is not numeric, not finite, or not > 0
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmount(value)

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text or not _AMOUNT_PATTERN.match(text) or not re.search(r'\d', text):
            raise InvalidAmount(value)
        try:
            amount = Decimal(text.replace('$', '').replace(',', ''))
        except InvalidOperation:
            raise InvalidAmount(value)
    else:
        raise InvalidAmount(value)

    if not amount.is_finite():
        raise InvalidAmount(value)

    try:
        amount = quantize(amount, precision)
    except InvalidOperation:
        # More digits than the decimal context can hold
        raise InvalidAmount(value)
    if amount <= ZERO:
        raise InvalidAmount(value)
    return amount


def format_amount(amount: Decimal, symbol: str = "$", precision: int = 2) -> str:
    """Format for display, e.g. $1,234.50"""
    if amount < ZERO:
        return f"-{symbol}{-amount:,.{precision}f}"
    return f"{symbol}{amount:,.{precision}f}"

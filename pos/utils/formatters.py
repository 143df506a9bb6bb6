"""
Presentation formatting helpers.

All amounts are carried at full Decimal precision; this is the only place
they are rounded to two digits.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Union, Optional

TWO_PLACES = Decimal('0.01')


def round_money(value: Union[int, float, Decimal, str, None]) -> Optional[Decimal]:
    """Round half-up to two decimals; None for invalid input."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        return None


def money(value: Union[int, float, Decimal, str, None], symbol: str = '') -> str:
    """
    Format an amount with thousands separators and exactly 2 decimals.

    Examples:
        money(1500) -> "1,500.00"
        money(Decimal('27.005'), 'Rs.') -> "Rs.27.01"
        money(None) -> "-"
    """
    num = round_money(value)
    if num is None:
        return "-"

    sign = "-" if num < 0 else ""
    return f"{sign}{symbol}{abs(num):,.2f}"


def quantity(value: Union[int, Decimal, None]) -> str:
    if value is None:
        return "-"
    value = Decimal(str(value))
    return str(int(value)) if value % 1 == 0 else f"{value:.2f}"


def datetime_short(value: Union[date, datetime, None]) -> str:
    """DD/MM/YYYY HH:MM, or DD/MM/YYYY for plain dates."""
    if value is None:
        return "-"
    if isinstance(value, datetime):
        return value.strftime('%d/%m/%Y %H:%M')
    return value.strftime('%d/%m/%Y')

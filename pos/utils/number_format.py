"""Number parsing utilities for till input (amounts, rates, quantities)."""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from pos.exceptions import ValidationError

DECIMAL_PATTERN = re.compile(r"^(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?$")
TWO_PLACES = Decimal('0.01')


def parse_decimal(value, field: str = 'value') -> Decimal:
    """
    Parse a non-negative amount typed at the till (e.g. "1,234.50" or 25).

    Rules:
    - Thousands separator: comma (,), optional
    - Decimal separator: dot (.)
    - Variable decimal digits
    - No negatives

    Raises:
        ValidationError: if the value is empty, malformed or negative.
    """
    if value is None:
        raise ValidationError(f'{field} is required', field=field)

    if isinstance(value, bool):
        raise ValidationError(f'Invalid number for {field}', field=field)

    if isinstance(value, (int, float, Decimal)):
        try:
            number = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(f'Invalid number for {field}', field=field)
    else:
        cleaned = str(value).strip()
        if not cleaned:
            raise ValidationError(f'{field} is required', field=field)
        if cleaned.startswith('-'):
            raise ValidationError(f'{field} cannot be negative', field=field)
        if not DECIMAL_PATTERN.match(cleaned):
            raise ValidationError(f'Invalid number for {field}: {cleaned}', field=field)
        number = Decimal(cleaned.replace(',', ''))

    if not number.is_finite():
        raise ValidationError(f'Invalid number for {field}', field=field)
    if number < 0:
        raise ValidationError(f'{field} cannot be negative', field=field)

    return number


def parse_quantity(value, field: str = 'qty') -> int:
    """Parse a whole, positive unit count."""
    number = parse_decimal(value, field)
    if number != number.to_integral_value() or number < 1:
        raise ValidationError(f'{field} must be a whole number greater than 0', field=field)
    return int(number)


def parse_amount(value, field: str = 'amount') -> Decimal:
    """parse_decimal, rounded half-up to cents (discounts typed at the till)."""
    return parse_decimal(value, field).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

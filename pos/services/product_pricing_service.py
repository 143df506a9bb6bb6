"""
MRP / discount% / price coupling for the product editor.

Priority rule, by the field the user just edited:
- discount: price is derived from MRP
- price: discount is derived from MRP
- mrp: price is derived from the discount when one is set,
  otherwise the discount is derived from the price
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from pos.exceptions import ValidationError
from pos.utils.number_format import parse_decimal

FIELDS = ('mrp', 'price', 'discount')
TWO_PLACES = Decimal('0.01')
HUNDRED = Decimal('100')


def _parse(value) -> Optional[Decimal]:
    """Lenient parse: blank or malformed input is simply 'not set'."""
    if value is None or str(value).strip() == '':
        return None
    try:
        return parse_decimal(value)
    except ValidationError:
        return None


def _price_from(mrp: Decimal, discount: Decimal) -> Decimal:
    return (mrp * (1 - discount / HUNDRED)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _discount_from(mrp: Decimal, price: Decimal) -> Decimal:
    return ((mrp - price) / mrp * HUNDRED).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def recalculate(changed_field: str, values: Dict) -> Dict[str, Optional[Decimal]]:
    """
    Return the editor values after `changed_field` was edited.

    Args:
        changed_field: 'mrp', 'price' or 'discount'
        values: current (possibly raw string) values of the three fields

    Returns:
        New dict with all three fields as Decimal (or None when unset).
    """
    if changed_field not in FIELDS:
        raise ValidationError(f'Unknown field: {changed_field}', field='field')

    result = {field: _parse(values.get(field)) for field in FIELDS}
    mrp, price, discount = result['mrp'], result['price'], result['discount']

    if result[changed_field] is None:
        return result

    if changed_field == 'discount':
        if mrp is not None:
            result['price'] = _price_from(mrp, discount)
    elif changed_field == 'price':
        if mrp is not None and mrp > 0:
            result['discount'] = _discount_from(mrp, price)
    else:
        if discount is not None:
            result['price'] = _price_from(mrp, discount)
        elif price is not None and mrp > 0:
            result['discount'] = _discount_from(mrp, price)

    return result

"""
Pricing engine: cart lines + discount selections -> financial breakdown.

Pure and deterministic. Every mechanism is evaluated against the same gross
subtotal (discounts are additive, never compounding) and all arithmetic is
Decimal; two-digit rounding is left to presentation.

Evaluation order:
    1. subtotal         sum(unit_price * quantity)
    2. item discount    sum(per_unit_discount * quantity)
    3. coupon           FLAT value, or value% of subtotal
    4. group discount   free units of every complete buy+get group, per line
    5. manual           AMOUNT value, or value% of subtotal
    6. discount total   2 + 3 + 4 + 5
    7. tax              sum(unit_price * quantity * tax_rate / 100), on gross
    8. grand total      max(0, subtotal + tax - discount total)
"""
import enum
import logging
from dataclasses import dataclass, asdict
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

from pos.models.coupon import CouponKind

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
HUNDRED = Decimal('100')


class ManualDiscountKind(str, enum.Enum):
    """How a manual discount value is applied."""
    AMOUNT = 'AMOUNT'
    PERCENT = 'PERCENT'


@dataclass(frozen=True)
class ManualDiscount:
    """Per-transaction manual override; never persisted on its own."""
    kind: ManualDiscountKind
    value: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {'kind': self.kind.value, 'value': str(self.value)}


@dataclass(frozen=True)
class DiscountSelections:
    """
    Active discount mechanisms for one pricing run.

    `coupon` and `scheme` are duck-typed: anything with the attributes of
    `Coupon` (code, kind, value, active) and `GroupDiscountScheme`
    (name, buy_qty, get_qty, active) works.
    """
    coupon: Any = None
    scheme: Any = None
    group_active: bool = False
    manual: Optional[ManualDiscount] = None


@dataclass(frozen=True)
class Breakdown:
    """Derived financial summary of a cart."""
    subtotal: Decimal = ZERO
    tax_total: Decimal = ZERO
    item_discount: Decimal = ZERO
    coupon_discount: Decimal = ZERO
    group_discount: Decimal = ZERO
    manual_discount: Decimal = ZERO
    discount_total: Decimal = ZERO
    grand_total: Decimal = ZERO
    coupon_code: Optional[str] = None
    scheme_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            key: (str(value) if isinstance(value, Decimal) else value)
            for key, value in asdict(self).items()
        }


def _to_decimal(value) -> Decimal:
    """Coerce to a non-negative Decimal; anything invalid counts as zero."""
    if value is None:
        return ZERO
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not number.is_finite() or number < 0:
        return ZERO
    return number


def _is_active(entity) -> bool:
    return entity is not None and bool(getattr(entity, 'active', True))


def calculate_subtotal(lines: Iterable) -> Decimal:
    return sum((_to_decimal(line.unit_price) * line.quantity for line in lines), ZERO)


def calculate_item_discount(lines: Iterable) -> Decimal:
    return sum((_to_decimal(line.per_unit_discount) * line.quantity for line in lines), ZERO)


def calculate_tax(lines: Iterable) -> Decimal:
    """Tax on gross line value; discounts never reduce it."""
    return sum(
        (_to_decimal(line.unit_price) * line.quantity * _to_decimal(line.tax_rate) / HUNDRED for line in lines),
        ZERO,
    )


def calculate_coupon_discount(coupon, subtotal: Decimal) -> Decimal:
    if not _is_active(coupon):
        return ZERO
    try:
        kind = CouponKind(coupon.kind)
    except ValueError:
        logger.warning(f"[PRICING] Coupon {getattr(coupon, 'code', '?')} has unknown kind {coupon.kind!r}; ignored")
        return ZERO
    value = _to_decimal(coupon.value)
    if kind is CouponKind.FLAT:
        return value
    return value * subtotal / HUNDRED


def calculate_group_discount(lines: Iterable, scheme) -> Decimal:
    """
    Free units per line: floor(quantity / (buy + get)) * get, credited at
    the line's unit price. Lines short of a full group earn nothing.
    """
    if not _is_active(scheme):
        return ZERO
    buy_qty = getattr(scheme, 'buy_qty', 0) or 0
    get_qty = getattr(scheme, 'get_qty', 0) or 0
    if buy_qty < 1 or get_qty < 1:
        return ZERO

    group_size = buy_qty + get_qty
    total = ZERO
    for line in lines:
        complete_groups = line.quantity // group_size
        free_units = complete_groups * get_qty
        total += free_units * _to_decimal(line.unit_price)
    return total


def calculate_manual_discount(manual: Optional[ManualDiscount], subtotal: Decimal) -> Decimal:
    if manual is None:
        return ZERO
    value = _to_decimal(manual.value)
    if manual.kind == ManualDiscountKind.PERCENT:
        return value * subtotal / HUNDRED
    return value


def compute_breakdown(lines: Iterable, selections: Optional[DiscountSelections] = None) -> Breakdown:
    """Compute the full breakdown for `lines` under `selections`."""
    lines = list(lines)
    selections = selections or DiscountSelections()

    if not lines:
        return Breakdown()

    subtotal = calculate_subtotal(lines)
    item_discount = calculate_item_discount(lines)
    coupon_discount = calculate_coupon_discount(selections.coupon, subtotal)

    scheme = selections.scheme if selections.group_active else None
    group_discount = calculate_group_discount(lines, scheme)

    manual_discount = calculate_manual_discount(selections.manual, subtotal)
    discount_total = item_discount + coupon_discount + group_discount + manual_discount
    tax_total = calculate_tax(lines)
    grand_total = max(ZERO, subtotal + tax_total - discount_total)

    return Breakdown(
        subtotal=subtotal,
        tax_total=tax_total,
        item_discount=item_discount,
        coupon_discount=coupon_discount,
        group_discount=group_discount,
        manual_discount=manual_discount,
        discount_total=discount_total,
        grand_total=grand_total,
        coupon_code=selections.coupon.code if _is_active(selections.coupon) else None,
        scheme_name=scheme.name if _is_active(scheme) else None,
    )

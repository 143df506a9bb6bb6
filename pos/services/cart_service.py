"""
Cart service - till cart state and discount selections.

The cart copies product fields when a product is first added (frozen
snapshot): later catalog price changes never touch an in-progress line.
Coupon and group scheme are stored by reference (code / id) and resolved
against the promotion registry on every pricing run, so a promotion that
is deactivated mid-sale simply stops contributing.
"""
import copy
import logging
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pos.exceptions import BusinessLogicError, NotFoundError, ValidationError
from pos.services.pricing_service import (
    Breakdown, DiscountSelections, ManualDiscount, ManualDiscountKind, compute_breakdown
)
from pos.utils.number_format import parse_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    """Catalog product fields as read at one point in time."""
    id: int
    name: str
    unit_price: Decimal
    unit_cost: Decimal = Decimal('0')
    tax_rate: Decimal = Decimal('0')
    stock_on_hand: int = 0
    barcode: Optional[str] = None

    @classmethod
    def build(cls, id, name, unit_price, unit_cost=0, tax_rate=0, stock_on_hand=0, barcode=None):
        return cls(
            id=int(id),
            name=name,
            unit_price=Decimal(str(unit_price)),
            unit_cost=Decimal(str(unit_cost or 0)),
            tax_rate=Decimal(str(tax_rate or 0)),
            stock_on_hand=int(stock_on_hand or 0),
            barcode=barcode,
        )


@dataclass
class CartLine:
    """One product in the current order."""
    product_id: int
    name: str
    unit_price: Decimal
    unit_cost: Decimal
    tax_rate: Decimal
    quantity: int = 1
    per_unit_discount: Decimal = Decimal('0')
    barcode: Optional[str] = None

    @classmethod
    def from_snapshot(cls, snapshot: ProductSnapshot, quantity: int = 1) -> 'CartLine':
        return cls(
            product_id=snapshot.id,
            name=snapshot.name,
            unit_price=snapshot.unit_price,
            unit_cost=snapshot.unit_cost,
            tax_rate=snapshot.tax_rate,
            quantity=quantity,
            barcode=snapshot.barcode,
        )

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            key: (str(value) if isinstance(value, Decimal) else value)
            for key, value in asdict(self).items()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartLine':
        return cls(
            product_id=int(data['product_id']),
            name=data['name'],
            unit_price=Decimal(str(data['unit_price'])),
            unit_cost=Decimal(str(data.get('unit_cost', '0'))),
            tax_rate=Decimal(str(data.get('tax_rate', '0'))),
            quantity=int(data.get('quantity', 1)),
            per_unit_discount=Decimal(str(data.get('per_unit_discount', '0'))),
            barcode=data.get('barcode'),
        )


class Cart:
    """Ordered cart lines plus the discount selections of one transaction."""

    def __init__(self, lines: Optional[List[CartLine]] = None, coupon_code: Optional[str] = None,
                 manual_discount: Optional[ManualDiscount] = None,
                 group_scheme_id: Optional[int] = None, group_active: bool = False):
        self.lines: List[CartLine] = list(lines or [])
        self.coupon_code = coupon_code
        self.manual_discount = manual_discount
        self.group_scheme_id = group_scheme_id
        self.group_active = group_active

    def __len__(self):
        return len(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def find_line(self, product_id: int) -> Optional[CartLine]:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def get_line(self, product_id: int) -> CartLine:
        line = self.find_line(product_id)
        if line is None:
            raise NotFoundError('Product is not in the cart.')
        return line

    # -- line mutations -------------------------------------------------

    def add(self, snapshot: ProductSnapshot, quantity: int = 1) -> CartLine:
        """Add a product, or bump the quantity of its existing line."""
        if quantity < 1:
            raise BusinessLogicError('Quantity must be greater than 0.')
        line = self.find_line(snapshot.id)
        if line:
            # Keep the price captured on first add
            line.quantity += quantity
        else:
            line = CartLine.from_snapshot(snapshot, quantity)
            self.lines.append(line)
        return line

    def increment(self, product_id: int) -> CartLine:
        line = self.get_line(product_id)
        line.quantity += 1
        return line

    def decrement(self, product_id: int) -> CartLine:
        """Reduce by one; never below 1 (removal is explicit)."""
        line = self.get_line(product_id)
        line.quantity = max(1, line.quantity - 1)
        return line

    def remove(self, product_id: int) -> None:
        self.lines = [line for line in self.lines if line.product_id != product_id]

    def set_line_discount(self, product_id: int, raw_value) -> CartLine:
        """Per-unit discount for one line; malformed input counts as zero."""
        line = self.get_line(product_id)
        try:
            line.per_unit_discount = parse_amount(raw_value, 'discount')
        except ValidationError as e:
            logger.warning(f"[CART] Line discount for product {product_id} rejected ({e.message}); using 0")
            line.per_unit_discount = Decimal('0')
        return line

    # -- discount selections -------------------------------------------

    def set_manual_discount(self, kind, raw_value) -> Optional[ManualDiscount]:
        """
        Set the manual override. An unknown kind or a malformed/negative
        value is logged and degraded to a zero discount.
        """
        try:
            discount_kind = ManualDiscountKind(str(kind or ManualDiscountKind.AMOUNT.value).upper())
        except ValueError:
            logger.warning(f"[CART] Unknown manual discount kind {kind!r}; using AMOUNT")
            discount_kind = ManualDiscountKind.AMOUNT

        if raw_value is None or str(raw_value).strip() == '':
            value = Decimal('0')
        else:
            try:
                value = parse_amount(raw_value, 'manual discount')
            except ValidationError as e:
                logger.warning(f"[CART] Manual discount rejected ({e.message}); using 0")
                value = Decimal('0')

        self.manual_discount = ManualDiscount(kind=discount_kind, value=value) if value > 0 else None
        return self.manual_discount

    def clear_coupon(self) -> None:
        self.coupon_code = None

    def reset_selections(self) -> None:
        """Coupon, manual discount and group toggle back to inactive."""
        self.coupon_code = None
        self.manual_discount = None
        self.group_active = False

    def clear(self) -> None:
        self.lines = []
        self.reset_selections()

    # -- serialization --------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lines': [line.to_dict() for line in self.lines],
            'coupon_code': self.coupon_code,
            'manual_discount': self.manual_discount.to_dict() if self.manual_discount else None,
            'group_scheme_id': self.group_scheme_id,
            'group_active': self.group_active,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Cart':
        data = data or {}
        manual = data.get('manual_discount')
        return cls(
            lines=[CartLine.from_dict(line) for line in data.get('lines', [])],
            coupon_code=data.get('coupon_code'),
            manual_discount=ManualDiscount(
                kind=ManualDiscountKind(manual['kind']),
                value=Decimal(str(manual['value'])),
            ) if manual else None,
            group_scheme_id=data.get('group_scheme_id'),
            group_active=bool(data.get('group_active', False)),
        )

    def copy(self) -> 'Cart':
        return copy.deepcopy(self)


# =====================================================
# REGISTRY-BACKED OPERATIONS
# =====================================================

def add_product(cart: Cart, catalog, product_id: int, quantity: int = 1) -> CartLine:
    """Snapshot a catalog product into the cart."""
    snapshot = catalog.get_product(product_id)
    line = cart.add(snapshot, quantity)
    logger.info(f"[CART] add product_id={product_id} qty={line.quantity}")
    return line


def add_by_barcode(cart: Cart, catalog, barcode: str) -> CartLine:
    """Scanner path: exact barcode match, +1 if already in the cart."""
    code = str(barcode or '').strip()
    snapshot = catalog.find_by_barcode(code) if code else None
    if snapshot is None:
        raise NotFoundError(f'No product with barcode "{code}".')
    line = cart.add(snapshot)
    logger.info(f"[CART] scan barcode={code} product_id={snapshot.id} qty={line.quantity}")
    return line


def apply_coupon(cart: Cart, promotions, code: str):
    """Activate a coupon by code; unknown or inactive codes are rejected."""
    code = str(code or '').strip()
    coupon = promotions.get_coupon(code) if code else None
    if coupon is None or not coupon.active:
        raise BusinessLogicError('Invalid or inactive coupon')
    cart.coupon_code = coupon.code
    logger.info(f"[CART] coupon {coupon.code} applied")
    return coupon


def select_group_discount(cart: Cart, promotions, scheme_id: Optional[int], active: bool):
    """Select a scheme (optional) and switch the group discount on or off."""
    if scheme_id is not None:
        scheme = promotions.get_scheme(scheme_id)
        if scheme is None or not scheme.active:
            raise NotFoundError('Group discount scheme not found or inactive.')
        cart.group_scheme_id = scheme.id
    cart.group_active = bool(active)
    return cart.group_scheme_id


def resolve_selections(cart: Cart, promotions) -> DiscountSelections:
    """Look up the cart's coupon and scheme; missing or inactive ones are absent."""
    coupon = promotions.get_coupon(cart.coupon_code) if cart.coupon_code else None
    if coupon is not None and not coupon.active:
        coupon = None

    scheme = None
    if cart.group_active and cart.group_scheme_id is not None:
        scheme = promotions.get_scheme(cart.group_scheme_id)
        if scheme is not None and not scheme.active:
            scheme = None

    return DiscountSelections(
        coupon=coupon,
        scheme=scheme,
        group_active=cart.group_active,
        manual=cart.manual_discount,
    )


def price_cart(cart: Cart, promotions) -> Breakdown:
    """Full recompute of the cart's breakdown."""
    return compute_breakdown(cart.lines, resolve_selections(cart, promotions))

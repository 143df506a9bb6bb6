"""
Checkout service with transactional logic.

Turns a priced cart into a Sale and decrements stock as one unit of work:

    IDLE -> VALIDATING -> COMMITTING -> COMMITTED
    VALIDATING or COMMITTING -> ABORTED (back to IDLE, cart and stock untouched)

No retry: a blocked checkout is reported to the caller, who corrects the
cart and resubmits.
"""
import enum
import logging
from decimal import Decimal
from typing import List, Optional

from pos.exceptions import BusinessLogicError, InsufficientStockError, NotFoundError, PersistenceError, PosError
from pos.models import Sale, SaleLine, PaymentMethod, normalize_payment_method
from pos.repositories.base import Storage
from pos.services.cart_service import Cart, price_cart
from pos.services.pricing_service import Breakdown

logger = logging.getLogger(__name__)


class CheckoutState(str, enum.Enum):
    IDLE = 'IDLE'
    VALIDATING = 'VALIDATING'
    COMMITTING = 'COMMITTING'
    COMMITTED = 'COMMITTED'
    ABORTED = 'ABORTED'


def commit_checkout(
    cart: Cart,
    breakdown: Breakdown,
    payment_method: str,
    storage: Storage,
    allowed_methods: Optional[List[str]] = None
) -> Sale:
    """
    Commit the cart as a Sale.

    Args:
        cart: Cart being paid; cleared (lines and discount selections) on success
        breakdown: Breakdown shown to the customer; must match a fresh recompute
        payment_method: 'CASH', 'CARD' or 'UPI'
        storage: Unit of work providing catalog, promotions and sales
        allowed_methods: Optional subset of payment methods accepted by this till

    Returns:
        The committed Sale.

    Raises:
        BusinessLogicError: empty cart, unknown payment method or stale breakdown
        InsufficientStockError: a line asks for more than is on hand
        PersistenceError: storage failure; nothing was written
    """
    try:
        method = PaymentMethod(normalize_payment_method(payment_method, allowed_methods))
    except ValueError as e:
        raise BusinessLogicError(str(e))

    if cart.is_empty:
        raise BusinessLogicError('The cart is empty.')

    state = CheckoutState.VALIDATING
    try:
        current = price_cart(cart, storage.promotions)
        if current != breakdown:
            raise BusinessLogicError('The order total changed. Review the cart before confirming.')

        # 1. Lock and validate stock
        levels = storage.catalog.stock_levels([line.product_id for line in cart.lines], lock=True)
        for line in cart.lines:
            if line.product_id not in levels:
                raise NotFoundError(f'Product "{line.name}" no longer exists.')
            if levels[line.product_id] < line.quantity:
                raise InsufficientStockError(line.name, line.quantity, levels[line.product_id],
                                             product_id=line.product_id)

        # 2. Persist the sale
        state = CheckoutState.COMMITTING
        sale = storage.sales.add_sale(_build_sale(cart, breakdown, method))

        # 3. Decrement stock
        for line in cart.lines:
            storage.catalog.decrement_stock(line.product_id, line.quantity)

        storage.commit()

    except PosError as e:
        storage.rollback()
        logger.warning(f"[CHECKOUT] {state.value} -> {CheckoutState.ABORTED.value}: {e.message}")
        raise
    except Exception as e:
        storage.rollback()
        logger.error(f"[CHECKOUT] {state.value} -> {CheckoutState.ABORTED.value}: storage failure: {e}", exc_info=True)
        raise PersistenceError(str(e)) from e

    logger.info(
        f"[CHECKOUT] {CheckoutState.COMMITTED.value}: sale #{sale.id} total={breakdown.grand_total} "
        f"method={method.value} lines={len(cart.lines)}"
    )
    cart.clear()
    return sale


def _build_sale(cart: Cart, breakdown: Breakdown, method: PaymentMethod) -> Sale:
    """Sale with deep-copied lines and the breakdown as shown."""
    zero = Decimal('0')
    sale = Sale(
        subtotal=breakdown.subtotal,
        tax_total=breakdown.tax_total,
        discount_total=breakdown.discount_total,
        total=breakdown.grand_total,
        item_discount=breakdown.item_discount,
        coupon_code=breakdown.coupon_code if breakdown.coupon_discount > zero else None,
        coupon_discount=breakdown.coupon_discount,
        group_scheme_name=breakdown.scheme_name if breakdown.group_discount > zero else None,
        group_discount=breakdown.group_discount,
        manual_discount=breakdown.manual_discount,
        payment_method=method,
    )
    for position, line in enumerate(cart.lines):
        sale.lines.append(SaleLine(
            position=position,
            product_id=line.product_id,
            product_name=line.name,
            barcode=line.barcode,
            unit_price=line.unit_price,
            unit_cost=line.unit_cost,
            tax_rate=line.tax_rate,
            qty=line.quantity,
            per_unit_discount=line.per_unit_discount,
        ))
    return sale

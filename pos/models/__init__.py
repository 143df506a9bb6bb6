"""Models package - exports all SQLAlchemy models."""
from pos.models.product import Product
from pos.models.coupon import Coupon, CouponKind
from pos.models.group_discount_scheme import GroupDiscountScheme
from pos.models.sale import Sale, PaymentMethod, normalize_payment_method
from pos.models.sale_line import SaleLine

__all__ = [
    'Product',
    'Coupon', 'CouponKind',
    'GroupDiscountScheme',
    'Sale', 'PaymentMethod', 'normalize_payment_method',
    'SaleLine',
]

"""Sale model."""
import enum
from sqlalchemy import Column, String, Numeric, DateTime, Enum, event
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pos.database import Base, IdType
from pos.exceptions import PersistenceError

# Six places hold tax and % discounts on 2-decimal inputs exactly; display rounds to 2
Money = Numeric(20, 6)


class PaymentMethod(enum.Enum):
    """Payment method label (no gateway integration)."""
    CASH = "CASH"
    CARD = "CARD"
    UPI = "UPI"


def normalize_payment_method(value, allowed=None) -> str:
    """
    Normalize payment method value to string for DB storage.
    
    Args:
        value: Can be None, PaymentMethod enum, or string
        allowed: Optional iterable restricting the accepted methods
    
    Returns:
        str: 'CASH', 'CARD' or 'UPI'
    
    Raises:
        ValueError: If value is invalid
    """
    if value is None:
        normalized = PaymentMethod.CASH.value
    elif isinstance(value, PaymentMethod):
        normalized = value.value
    else:
        normalized = str(value).upper().strip()
    
    valid = {m.value for m in PaymentMethod}
    if allowed is not None:
        valid &= {str(m).upper() for m in allowed}
    
    if normalized not in valid:
        raise ValueError(f"Invalid payment method: {value}. Must be one of {', '.join(sorted(valid))}.")
    return normalized


class Sale(Base):
    """
    Sale (committed checkout).
    
    Immutable once flushed: stored totals are the breakdown at commit time
    and are never recomputed from the lines.
    """
    
    __tablename__ = 'sale'
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    datetime = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    subtotal = Column(Money, nullable=False)
    tax_total = Column(Money, nullable=False)
    discount_total = Column(Money, nullable=False)
    total = Column(Money, nullable=False)
    
    # Discount detail per mechanism
    item_discount = Column(Money, nullable=False, default=0)
    coupon_code = Column(String(50), nullable=True)
    coupon_discount = Column(Money, nullable=False, default=0)
    group_scheme_name = Column(String(100), nullable=True)
    group_discount = Column(Money, nullable=False, default=0)
    manual_discount = Column(Money, nullable=False, default=0)
    
    payment_method = Column(Enum(PaymentMethod, name='payment_method'), nullable=False, default=PaymentMethod.CASH)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    # Relationships
    lines = relationship('SaleLine', back_populates='sale', cascade='all, delete-orphan',
                         order_by='SaleLine.position')
    
    @property
    def discount_detail(self):
        """Per-mechanism discount amounts; absent mechanisms are None."""
        return {
            'item': self.item_discount,
            'coupon': {'code': self.coupon_code, 'amount': self.coupon_discount} if self.coupon_code else None,
            'group': {'scheme_name': self.group_scheme_name, 'amount': self.group_discount} if self.group_scheme_name else None,
            'manual': {'amount': self.manual_discount} if self.manual_discount else None,
        }
    
    def to_dict(self):
        """Stored shape used to re-render receipts and exports."""
        def _money(value):
            return str(value) if value is not None else None
        
        detail = self.discount_detail
        return {
            'id': self.id,
            'timestamp': self.datetime.isoformat() if self.datetime else None,
            'lines': [line.to_dict() for line in self.lines],
            'subtotal': _money(self.subtotal),
            'tax': _money(self.tax_total),
            'discount': _money(self.discount_total),
            'discount_detail': {
                'item': _money(detail['item']),
                'coupon': {'code': detail['coupon']['code'], 'amount': _money(detail['coupon']['amount'])} if detail['coupon'] else None,
                'group': {'scheme_name': detail['group']['scheme_name'], 'amount': _money(detail['group']['amount'])} if detail['group'] else None,
                'manual': {'amount': _money(detail['manual']['amount'])} if detail['manual'] else None,
            },
            'total': _money(self.total),
            'payment_method': self.payment_method.value if self.payment_method else None,
        }

    def __repr__(self):
        return f"<Sale(id={self.id}, total={self.total}, payment_method={self.payment_method})>"


@event.listens_for(Sale, 'before_update')
def _sale_is_immutable(mapper, connection, target):
    raise PersistenceError(f'Sale #{target.id} is immutable once committed')

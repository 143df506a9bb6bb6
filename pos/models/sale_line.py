"""Sale Line model."""
from sqlalchemy import Column, String, Integer, Numeric, ForeignKey, event
from sqlalchemy.orm import relationship
from pos.database import Base, IdType
from pos.exceptions import PersistenceError
from pos.models.sale import Money


class SaleLine(Base):
    """Sale Line - copy of a cart line at commit time."""
    
    __tablename__ = 'sale_line'
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    sale_id = Column(IdType, ForeignKey('sale.id', ondelete='CASCADE'), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    
    # Product snapshot; product_id is informative, the sale never reads the live product
    product_id = Column(IdType, ForeignKey('product.id'), nullable=True)
    product_name = Column(String, nullable=False)
    barcode = Column(String, nullable=True)
    unit_price = Column(Money, nullable=False)
    unit_cost = Column(Money, nullable=False, default=0)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    qty = Column(Integer, nullable=False)
    per_unit_discount = Column(Money, nullable=False, default=0)
    
    # Relationships
    sale = relationship('Sale', back_populates='lines')
    
    @property
    def line_total(self):
        return self.unit_price * self.qty
    
    def to_dict(self):
        return {
            'product_id': self.product_id,
            'name': self.product_name,
            'barcode': self.barcode,
            'unit_price': str(self.unit_price),
            'unit_cost': str(self.unit_cost),
            'tax_rate': str(self.tax_rate),
            'quantity': self.qty,
            'per_unit_discount': str(self.per_unit_discount),
            'line_total': str(self.line_total),
        }
    
    def __repr__(self):
        return f"<SaleLine(id={self.id}, product_id={self.product_id}, qty={self.qty})>"


@event.listens_for(SaleLine, 'before_update')
def _sale_line_is_immutable(mapper, connection, target):
    raise PersistenceError(f'Sale line #{target.id} is immutable once committed')

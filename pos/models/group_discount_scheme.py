"""Group discount ("buy X get Y free") scheme model."""
from sqlalchemy import Column, String, Boolean, Integer, DateTime, CheckConstraint
from sqlalchemy.sql import func
from pos.database import Base, IdType


class GroupDiscountScheme(Base):
    """
    Buy `buy_qty`, get `get_qty` free.
    
    Every complete group of `buy_qty + get_qty` units in a single cart line
    earns `get_qty` free units of that line's product.
    """
    
    __tablename__ = 'group_discount_scheme'
    __table_args__ = (
        CheckConstraint('buy_qty >= 1', name='ck_scheme_buy_qty'),
        CheckConstraint('get_qty >= 1', name='ck_scheme_get_qty'),
    )
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    buy_qty = Column(Integer, nullable=False)
    get_qty = Column(Integer, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    @property
    def group_size(self):
        return self.buy_qty + self.get_qty
    
    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'buy_qty': self.buy_qty,
            'get_qty': self.get_qty,
            'active': self.active,
        }
    
    def __repr__(self):
        return f"<GroupDiscountScheme(id={self.id}, name='{self.name}', buy={self.buy_qty}, get={self.get_qty})>"

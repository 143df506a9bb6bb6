"""Coupon model."""
import enum
from sqlalchemy import Column, String, Boolean, Numeric, DateTime, Enum
from sqlalchemy.sql import func
from pos.database import Base, IdType


class CouponKind(str, enum.Enum):
    """How a coupon's value is applied."""
    PERCENT = 'PERCENT'  # value% of subtotal
    FLAT = 'FLAT'        # fixed amount


class Coupon(Base):
    """Named coupon, looked up by code at the till."""
    
    __tablename__ = 'coupon'
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    code = Column(String(50), nullable=False, unique=True, index=True)
    kind = Column(Enum(CouponKind, name='coupon_kind'), nullable=False)
    value = Column(Numeric(10, 2), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    def __repr__(self):
        return f"<Coupon(code='{self.code}', kind={self.kind.value}, value={self.value}, active={self.active})>"

"""Product model."""
from sqlalchemy import Column, String, Boolean, Integer, Numeric, DateTime, CheckConstraint
from sqlalchemy.sql import func
from pos.database import Base, IdType


class Product(Base):
    """Catalog product with its current price, cost, tax rate and stock."""
    
    __tablename__ = 'product'
    __table_args__ = (
        CheckConstraint('stock >= 0', name='ck_product_stock_non_negative'),
    )
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    barcode = Column(String, nullable=True, unique=True, index=True)
    brand = Column(String, nullable=True)
    category = Column(String, nullable=True, index=True)
    price = Column(Numeric(10, 2), nullable=False)  # Sale price
    mrp = Column(Numeric(10, 2), nullable=True)  # Maximum retail price
    discount_rate = Column(Numeric(5, 2), nullable=False, default=0, server_default='0')  # % off MRP
    cost = Column(Numeric(10, 2), nullable=False, default=0, server_default='0.00')  # Purchase price
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0, server_default='0')  # GST %
    stock = Column(Integer, nullable=False, default=0, server_default='0')
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', barcode='{self.barcode}')>"
    
    def to_snapshot(self):
        """Copy of the fields the cart freezes at add time."""
        from pos.services.cart_service import ProductSnapshot
        return ProductSnapshot.build(
            id=self.id,
            name=self.name,
            barcode=self.barcode,
            unit_price=self.price,
            unit_cost=self.cost,
            tax_rate=self.tax_rate,
            stock_on_hand=self.stock,
        )

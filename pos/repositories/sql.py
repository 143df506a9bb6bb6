"""SQLAlchemy-backed repositories sharing one session (one unit of work)."""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from pos.exceptions import InsufficientStockError, NotFoundError
from pos.models import Coupon, GroupDiscountScheme, Product, Sale
from pos.repositories.base import CatalogStore, PromotionRegistry, SaleStore, Storage


class SqlCatalogStore(CatalogStore):

    def __init__(self, session: Session):
        self.session = session

    def _active_product(self, product_id: int) -> Optional[Product]:
        return self.session.query(Product).filter(
            Product.id == product_id,
            Product.active == True  # noqa: E712
        ).first()

    def get_product(self, product_id: int):
        product = self._active_product(product_id)
        if not product:
            raise NotFoundError('Product not found or inactive.')
        return product.to_snapshot()

    def find_by_barcode(self, barcode: str):
        if not barcode:
            return None
        product = self.session.query(Product).filter(
            Product.active == True,  # noqa: E712
            Product.barcode.isnot(None),
            func.lower(Product.barcode) == str(barcode).strip().lower()
        ).first()
        return product.to_snapshot() if product else None

    def stock_levels(self, product_ids: Iterable[int], lock: bool = False) -> Dict[int, int]:
        product_ids = sorted(set(product_ids))
        if not product_ids:
            return {}
        query = self.session.query(Product.id, Product.stock).filter(Product.id.in_(product_ids))
        if lock:
            # Ordered ids keep lock acquisition deterministic across tills
            query = query.order_by(Product.id).with_for_update()
        return {row[0]: int(row[1]) for row in query.all()}

    def decrement_stock(self, product_id: int, qty: int) -> int:
        updated = self.session.query(Product).filter(
            Product.id == product_id,
            Product.stock >= qty
        ).update({Product.stock: Product.stock - qty}, synchronize_session='fetch')

        if updated != 1:
            product = self.session.get(Product, product_id)
            if product is None:
                raise NotFoundError(f'Product {product_id} not found.')
            raise InsufficientStockError(product.name, qty, product.stock, product_id=product_id)

        return int(self.session.query(Product.stock).filter(Product.id == product_id).scalar())


class SqlPromotionRegistry(PromotionRegistry):

    def __init__(self, session: Session):
        self.session = session

    def get_coupon(self, code: str) -> Optional[Coupon]:
        if not code:
            return None
        return self.session.query(Coupon).filter(Coupon.code == str(code).strip()).first()

    def get_scheme(self, scheme_id: int) -> Optional[GroupDiscountScheme]:
        if scheme_id is None:
            return None
        return self.session.get(GroupDiscountScheme, scheme_id)

    def list_active_group_schemes(self) -> List[GroupDiscountScheme]:
        return self.session.query(GroupDiscountScheme).filter(
            GroupDiscountScheme.active == True  # noqa: E712
        ).order_by(GroupDiscountScheme.id).all()


class SqlSaleStore(SaleStore):

    def __init__(self, session: Session):
        self.session = session

    def add_sale(self, sale: Sale) -> Sale:
        if sale.datetime is None:
            sale.datetime = datetime.now(timezone.utc)
        self.session.add(sale)
        self.session.flush()
        return sale

    def get_sale(self, sale_id: int) -> Optional[Sale]:
        return self.session.get(Sale, sale_id)


class SqlStorage(Storage):
    """All three stores on one session; commit/rollback apply to all writes."""

    def __init__(self, session: Session):
        self.session = session
        self.catalog = SqlCatalogStore(session)
        self.promotions = SqlPromotionRegistry(session)
        self.sales = SqlSaleStore(session)

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

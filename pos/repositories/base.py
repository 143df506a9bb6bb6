"""
Repository interfaces the pricing engine and checkout depend on.

Implementations: `pos.repositories.sql` (SQLAlchemy) for the service, and
an in-memory fake in the test-suite.
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional


class CatalogStore(ABC):
    """Product snapshots and stock levels."""

    @abstractmethod
    def get_product(self, product_id: int):
        """Snapshot of an active product; raises NotFoundError."""

    @abstractmethod
    def find_by_barcode(self, barcode: str):
        """Snapshot for an exact barcode match, or None."""

    @abstractmethod
    def stock_levels(self, product_ids: Iterable[int], lock: bool = False) -> Dict[int, int]:
        """Current stock per product id; `lock` holds the rows until commit/rollback."""

    @abstractmethod
    def decrement_stock(self, product_id: int, qty: int) -> int:
        """Subtract `qty` and return the new level; raises InsufficientStockError."""


class PromotionRegistry(ABC):
    """Coupons and group discount schemes (read-only for the till)."""

    @abstractmethod
    def get_coupon(self, code: str):
        """Coupon by code (active or not), or None."""

    @abstractmethod
    def get_scheme(self, scheme_id: int):
        """Group discount scheme by id, or None."""

    @abstractmethod
    def list_active_group_schemes(self) -> List:
        """Active schemes, ordered by id."""


class SaleStore(ABC):
    """Append-only sale records."""

    @abstractmethod
    def add_sale(self, sale):
        """Persist a new Sale (with its lines); assigns id and timestamp."""

    @abstractmethod
    def get_sale(self, sale_id: int):
        """Stored Sale, or None."""


class Storage(ABC):
    """
    Unit of work over the three stores.

    Writes made through `catalog` and `sales` become durable together on
    `commit()` and are all discarded by `rollback()`.
    """

    catalog: CatalogStore
    promotions: PromotionRegistry
    sales: SaleStore

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass

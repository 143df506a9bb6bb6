"""Repository interfaces and their SQLAlchemy implementations."""
from pos.repositories.base import CatalogStore, PromotionRegistry, SaleStore, Storage
from pos.repositories.sql import SqlCatalogStore, SqlPromotionRegistry, SqlSaleStore, SqlStorage

__all__ = [
    'CatalogStore', 'PromotionRegistry', 'SaleStore', 'Storage',
    'SqlCatalogStore', 'SqlPromotionRegistry', 'SqlSaleStore', 'SqlStorage',
]

"""
Contracts (data models).

This folder defines the shapes exchanged with external integrations:
- raw upstream catalog objects (items, variations, categories, inventory counts)
- the Product / Category documents written to the local mirror
- the CatalogClient / StoreAdapter interfaces the sync core depends on

Both mock and real clients should use these contracts.
"""
from .catalog import (
    InventoryCount,
    RawCategory,
    RawItem,
    RawMoney,
    RawVariation,
    aggregate_inventory,
)
from .interfaces import CatalogClient, Category, Product, StockStatus, StoreAdapter

__all__ = [
    "CatalogClient",
    "Category",
    "InventoryCount",
    "Product",
    "RawCategory",
    "RawItem",
    "RawMoney",
    "RawVariation",
    "StockStatus",
    "StoreAdapter",
    "aggregate_inventory",
]

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class StockStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


# ---------------------------------------------------------------------------
# Mirrored data models
# ---------------------------------------------------------------------------

@dataclass
class Product:
    id: str
    name: str
    description: str
    price: Decimal                       # major units, 2 decimals
    category: str
    stock: int
    currency: str = "USD"
    category_id: Optional[str] = None
    sku: str = ""
    variation_id: Optional[str] = None
    image_url: str = ""
    images: List[str] = field(default_factory=list)
    available_online: bool = True
    low_stock: bool = False
    last_synced_at: Optional[datetime] = None

    @property
    def stock_status(self) -> StockStatus:
        return StockStatus.IN_STOCK if self.stock > 0 else StockStatus.OUT_OF_STOCK

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": float(self.price),
            "currency": self.currency,
            "category": self.category,
            "categoryId": self.category_id,
            "stock": self.stock,
            "stockStatus": self.stock_status.value,
            "lowStockAlert": self.low_stock,
            "sku": self.sku,
            "squareVariationId": self.variation_id,
            "imageUrl": self.image_url,
            "images": list(self.images),
            "isVisible": self.available_online,
            "source": "square",
            "lastSyncedAt": self.last_synced_at.isoformat() if self.last_synced_at else None,
        }


@dataclass
class Category:
    id: str
    name: str
    emoji: str
    color: str
    description: str
    product_count: int = 0
    last_synced_at: Optional[datetime] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "emoji": self.emoji,
            "color": self.color,
            "description": self.description,
            "productCount": self.product_count,
            "source": "square",
            "lastSyncedAt": self.last_synced_at.isoformat() if self.last_synced_at else None,
        }


# ---------------------------------------------------------------------------
# Abstract collaborator interfaces
# ---------------------------------------------------------------------------

class CatalogClient(ABC):
    """Every upstream catalog source (real or mock) must implement this interface."""

    @abstractmethod
    async def get_catalog_items(self) -> List[Dict[str, Any]]:
        """Return raw catalog ITEM objects."""

    @abstractmethod
    async def get_categories(self) -> List[Dict[str, Any]]:
        """Return raw catalog CATEGORY objects."""

    @abstractmethod
    async def get_inventory_counts(self) -> Dict[str, int]:
        """Return on-hand counts keyed by catalog object id (item or variation)."""

    async def get_image(self, image_id: str) -> Optional[Dict[str, Any]]:
        """Resolve an upstream image id to its metadata. Optional."""
        return None


class StoreAdapter(ABC):
    """Document store holding the local product/category mirror."""

    @abstractmethod
    async def list_ids(self, collection: str) -> List[str]:
        """Return every document id in a collection."""

    @abstractmethod
    async def upsert(self, collection: str, record_id: str, record: Mapping[str, Any]) -> None:
        """Create or fully overwrite a document."""

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> None:
        """Delete a document; deleting a missing id is not an error."""

    @abstractmethod
    async def get_all(self, collection: str) -> List[Dict[str, Any]]:
        """Return every document in a collection."""

    async def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        for document in await self.get_all(collection):
            if document.get("id") == record_id:
                return document
        return None

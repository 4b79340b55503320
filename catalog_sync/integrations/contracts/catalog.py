"""
Upstream catalog contracts.

Boundary schemas for the loosely structured JSON returned by the catalog
provider (ITEM, ITEM_VARIATION, CATEGORY objects and inventory counts).

These contracts must be used by both:
- clients/mocks/local_catalog.py (fixture catalog for development/testing)
- clients/real_http/square_catalog.py (live catalog API)

Unknown fields are ignored; missing optional fields default; fields of the
wrong type raise pydantic.ValidationError so a malformed record is caught at
ingestion instead of deep inside reconciliation.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_FLOOR
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _RawModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RawMoney(_RawModel):
    amount: Optional[int] = None         # minor units (cents)
    currency: Optional[str] = None


class RawVariationData(_RawModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    upc: Optional[str] = None
    ordinal: Optional[int] = None
    price_money: Optional[RawMoney] = None
    track_inventory: Optional[bool] = None


class RawVariation(_RawModel):
    id: str
    type: str = "ITEM_VARIATION"
    item_variation_data: Optional[RawVariationData] = None

    @property
    def price_amount(self) -> Optional[int]:
        data = self.item_variation_data
        if data is None or data.price_money is None:
            return None
        return data.price_money.amount


class RawCategoryRef(_RawModel):
    id: str


class RawItemData(_RawModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    categories: List[RawCategoryRef] = Field(default_factory=list)
    reporting_category: Optional[RawCategoryRef] = None
    variations: List[RawVariation] = Field(default_factory=list)
    image_ids: List[str] = Field(default_factory=list)
    available_online: Optional[bool] = None


class RawItem(_RawModel):
    id: str
    type: str = "ITEM"
    version: Optional[int] = None
    item_data: Optional[RawItemData] = None

    @property
    def variations(self) -> List[RawVariation]:
        return self.item_data.variations if self.item_data else []

    @property
    def category_ref(self) -> Optional[str]:
        data = self.item_data
        if data is None:
            return None
        if data.category_id:
            return data.category_id
        if data.categories:
            return data.categories[0].id
        if data.reporting_category is not None:
            return data.reporting_category.id
        return None


class RawCategoryData(_RawModel):
    name: Optional[str] = None


class RawCategory(_RawModel):
    id: str
    type: str = "CATEGORY"
    category_data: Optional[RawCategoryData] = None

    @property
    def name(self) -> Optional[str]:
        return self.category_data.name if self.category_data else None


class InventoryCount(_RawModel):
    catalog_object_id: str
    location_id: Optional[str] = None
    quantity: Decimal = Decimal("0")
    state: Optional[str] = None
    calculated_at: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def aggregate_inventory(counts: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Sum on-hand quantities per catalog object across locations.

    Only IN_STOCK entries count; entries without a state are treated as on hand.
    """
    totals: Dict[str, Decimal] = {}
    for raw in counts:
        count = InventoryCount.model_validate(raw)
        if count.state and count.state.upper() != "IN_STOCK":
            continue
        totals[count.catalog_object_id] = totals.get(count.catalog_object_id, Decimal("0")) + count.quantity
    return {
        object_id: max(int(total.to_integral_value(rounding=ROUND_FLOOR)), 0)
        for object_id, total in totals.items()
    }

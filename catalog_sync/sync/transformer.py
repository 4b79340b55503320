"""
Catalog transformer.

Pure functions that normalize raw upstream catalog objects into the Product
and Category documents stored in the local mirror. No network, datastore or
clock access happens here; the coordinator stamps sync timestamps.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from catalog_sync.errors import MalformedItemError
from catalog_sync.integrations.contracts.catalog import RawCategory, RawItem, RawVariation
from catalog_sync.integrations.contracts.interfaces import Category, Product
from catalog_sync.utils.config_loader import TransformSettings

RawItemLike = Union[RawItem, Mapping[str, Any]]
RawCategoryLike = Union[RawCategory, Mapping[str, Any]]

_CENTS = Decimal("0.01")

# (keywords, emoji, tailwind gradient) checked in order against the lower-cased name
_CATEGORY_STYLES: Tuple[Tuple[Tuple[str, ...], str, str], ...] = (
    (("rice", "grain"), "🌾", "from-amber-500 to-yellow-600"),
    (("spice", "masala"), "🌶️", "from-red-500 to-orange-600"),
    (("lentil", "dal", "pulse"), "🫘", "from-orange-500 to-red-600"),
    (("flour", "atta"), "🌾", "from-yellow-500 to-amber-600"),
    (("oil", "ghee"), "🫒", "from-green-500 to-emerald-600"),
    (("snack", "namkeen"), "🍿", "from-purple-500 to-pink-600"),
    (("sweet", "mithai"), "🍯", "from-pink-500 to-rose-600"),
    (("tea", "chai"), "🍵", "from-brown-500 to-amber-600"),
    (("pickle", "achar"), "🥒", "from-lime-500 to-green-600"),
    (("sauce", "chutney"), "🥫", "from-red-500 to-pink-600"),
    (("frozen",), "🧊", "from-blue-500 to-cyan-600"),
    (("dairy", "milk"), "🥛", "from-blue-500 to-indigo-600"),
    (("vegetable", "sabzi"), "🥬", "from-green-500 to-lime-600"),
    (("fruit",), "🍎", "from-red-500 to-pink-600"),
    (("bread", "roti"), "🫓", "from-orange-500 to-yellow-600"),
    (("beverage", "drink"), "🥤", "from-blue-500 to-purple-600"),
)
_DEFAULT_EMOJI = "🛒"
_DEFAULT_COLOR = "from-lime-500 to-green-600"

_DEFAULT_SETTINGS = TransformSettings()


# ---------------------------------------------------------------------------
# Boundary parsing
# ---------------------------------------------------------------------------

def parse_item(item: RawItemLike) -> RawItem:
    if isinstance(item, RawItem):
        return item
    try:
        return RawItem.model_validate(item)
    except ValidationError as e:
        item_id = item.get("id") if isinstance(item, Mapping) else None
        raise MalformedItemError(f"Malformed catalog item {item_id!r}: {e}", item_id=item_id) from e


def parse_category(category: RawCategoryLike) -> RawCategory:
    if isinstance(category, RawCategory):
        return category
    try:
        return RawCategory.model_validate(category)
    except ValidationError as e:
        category_id = category.get("id") if isinstance(category, Mapping) else None
        raise MalformedItemError(f"Malformed catalog category {category_id!r}: {e}", item_id=category_id) from e


def normalize_category_name(name: Optional[str]) -> str:
    return (name or "").strip().casefold()


def category_style(name: str) -> Tuple[str, str]:
    """Return (emoji, color) for a category display name."""
    lowered = (name or "").lower()
    for keywords, emoji, color in _CATEGORY_STYLES:
        if any(keyword in lowered for keyword in keywords):
            return emoji, color
    return _DEFAULT_EMOJI, _DEFAULT_COLOR


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------

def minor_to_major(amount: int) -> Decimal:
    return (Decimal(amount) / 100).quantize(_CENTS, rounding=ROUND_HALF_UP)


def first_priced_variation(variations: Iterable[RawVariation]) -> Optional[RawVariation]:
    for variation in variations:
        amount = variation.price_amount
        if amount is not None and amount >= 0:
            return variation
    return None


def resolve_stock(
    item: RawItem,
    priced: RawVariation,
    inventory: Mapping[str, int],
    default_stock: int,
) -> int:
    """Item id first, then the priced variation, then any other variation."""
    keys: List[str] = [item.id, priced.id]
    keys.extend(v.id for v in item.variations if v.id != priced.id)
    for key in keys:
        if key in inventory:
            return max(int(inventory[key]), 0)
    return default_stock


def _category_names(categories: Iterable[RawCategoryLike]) -> Dict[str, str]:
    names: Dict[str, str] = {}
    for raw in categories:
        category = parse_category(raw)
        if category.name:
            names[category.id] = category.name
    return names


def transform(
    item: RawItemLike,
    categories: Iterable[RawCategoryLike] = (),
    inventory: Optional[Mapping[str, int]] = None,
    settings: Optional[TransformSettings] = None,
    *,
    category_names: Optional[Mapping[str, str]] = None,
) -> Optional[Product]:
    """
    Normalize one raw catalog item into a Product.

    Returns None when the item has no variation carrying a price; such items are
    excluded from the desired set. Raises MalformedItemError when the raw payload
    does not match the boundary schema.

    `category_names` lets callers pass a pre-built id -> name map instead of
    re-parsing the category list for every item.
    """
    settings = settings or _DEFAULT_SETTINGS
    raw = parse_item(item)
    priced = first_priced_variation(raw.variations)
    if priced is None:
        return None

    data = raw.item_data
    variation_data = priced.item_variation_data
    money = variation_data.price_money

    if category_names is None:
        category_names = _category_names(categories)
    category_id = raw.category_ref
    category = category_names.get(category_id) if category_id else None

    stock = resolve_stock(raw, priced, inventory or {}, settings.default_stock)

    images = [settings.image_url_template.format(image_id=image_id) for image_id in data.image_ids]

    return Product(
        id=raw.id,
        name=data.name if data.name is not None else "Unnamed Product",
        description=data.description or "",
        price=minor_to_major(money.amount),
        currency=(money.currency or settings.default_currency).upper(),
        category=category or settings.fallback_category,
        category_id=category_id,
        stock=stock,
        sku=variation_data.sku or f"SKU-{raw.id}",
        variation_id=priced.id,
        image_url=images[0] if images else settings.placeholder_image,
        images=images,
        available_online=data.available_online is not False,
        low_stock=stock <= settings.low_stock_threshold,
    )


def transform_category(category: RawCategoryLike) -> Category:
    raw = parse_category(category)
    name = raw.name or "Unnamed Category"
    emoji, color = category_style(name)
    return Category(
        id=raw.id,
        name=name,
        emoji=emoji,
        color=color,
        description=f"Browse {name} from our collection",
    )


def count_products_by_category(products: Iterable[Product]) -> Dict[str, int]:
    """Product counts keyed by normalized category name."""
    counts: Dict[str, int] = {}
    for product in products:
        key = normalize_category_name(product.category)
        counts[key] = counts.get(key, 0) + 1
    return counts

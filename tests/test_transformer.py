from decimal import Decimal

import pytest

from catalog_sync.errors import MalformedItemError
from catalog_sync.integrations.contracts.interfaces import StockStatus
from catalog_sync.sync.transformer import (
    category_style,
    count_products_by_category,
    minor_to_major,
    normalize_category_name,
    transform,
    transform_category,
)
from catalog_sync.utils.config_loader import TransformSettings
from tests.factories import make_category, make_item


CATEGORIES = [make_category("CAT_SPICES", "Spices & Masala"), make_category("CAT_RICE", "Rice & Grains")]


def test_item_without_priced_variation_is_excluded():
    item = make_item("NOPRICE", amount=None)
    assert transform(item, CATEGORIES, {}) is None


def test_item_without_variations_is_excluded():
    item = {"id": "EMPTY", "type": "ITEM", "item_data": {"name": "Empty", "variations": []}}
    assert transform(item, CATEGORIES, {}) is None


def test_negative_price_counts_as_unpriced():
    assert transform(make_item("NEG", amount=-100), CATEGORIES, {}) is None


def test_first_priced_variation_supplies_price_and_sku():
    item = make_item("MULTI", amount=None)
    item["item_data"]["variations"].append(
        {"id": "MULTI_PRICED", "item_variation_data": {"sku": "PRICED-SKU", "price_money": {"amount": 250}}}
    )
    product = transform(item, CATEGORIES, {})
    assert product is not None
    assert product.price == Decimal("2.50")
    assert product.sku == "PRICED-SKU"
    assert product.variation_id == "MULTI_PRICED"


@pytest.mark.parametrize(
    "amount,expected",
    [(4599, Decimal("45.99")), (0, Decimal("0.00")), (5, Decimal("0.05")), (100000, Decimal("1000.00"))],
)
def test_minor_units_convert_to_two_decimals(amount, expected):
    assert minor_to_major(amount) == expected


def test_category_resolves_by_id():
    product = transform(make_item("A", category_id="CAT_SPICES"), CATEGORIES, {})
    assert product.category == "Spices & Masala"
    assert product.category_id == "CAT_SPICES"


def test_category_falls_back_when_reference_missing_or_unknown():
    assert transform(make_item("A"), CATEGORIES, {}).category == "Uncategorized"
    assert transform(make_item("B", category_id="CAT_GONE"), CATEGORIES, {}).category == "Uncategorized"


def test_category_from_categories_list():
    item = make_item("A", categories=[{"id": "CAT_RICE"}])
    assert transform(item, CATEGORIES, {}).category == "Rice & Grains"


def test_missing_inventory_uses_default_stock_not_zero():
    product = transform(make_item("A"), CATEGORIES, {})
    assert product.stock == 100
    assert product.stock_status is StockStatus.IN_STOCK


def test_inventory_looked_up_by_variation_id():
    product = transform(make_item("A", variation_id="VAR_A"), CATEGORIES, {"VAR_A": 7})
    assert product.stock == 7


def test_inventory_item_id_takes_precedence():
    product = transform(make_item("A", variation_id="VAR_A"), CATEGORIES, {"A": 3, "VAR_A": 9})
    assert product.stock == 3


def test_zero_inventory_is_out_of_stock_and_low():
    product = transform(make_item("A", variation_id="VAR_A"), CATEGORIES, {"VAR_A": 0})
    assert product.stock == 0
    assert product.stock_status is StockStatus.OUT_OF_STOCK
    assert product.low_stock is True


def test_negative_inventory_clamps_to_zero():
    product = transform(make_item("A", variation_id="VAR_A"), CATEGORIES, {"VAR_A": -4})
    assert product.stock == 0


def test_default_stock_is_configurable():
    settings = TransformSettings(default_stock=0)
    assert transform(make_item("A"), CATEGORIES, {}, settings).stock == 0


def test_missing_name_and_description_get_defaults():
    item = make_item("A")
    item["item_data"]["name"] = None
    product = transform(item, CATEGORIES, {})
    assert product.name == "Unnamed Product"
    assert product.description == ""


def test_image_ids_map_through_template():
    product = transform(make_item("A", image_ids=["IMG_1", "IMG_2"]), CATEGORIES, {})
    assert product.images == ["/api/v1/images/IMG_1", "/api/v1/images/IMG_2"]
    assert product.image_url == "/api/v1/images/IMG_1"


def test_no_images_uses_placeholder():
    assert transform(make_item("A"), CATEGORIES, {}).image_url == "/images/placeholder.svg"


def test_malformed_item_raises_with_id():
    bad = {"id": "BAD", "item_data": {"variations": "not-a-list"}}
    with pytest.raises(MalformedItemError) as exc:
        transform(bad, CATEGORIES, {})
    assert exc.value.item_id == "BAD"


def test_transform_is_deterministic():
    item = make_item("A", category_id="CAT_RICE", image_ids=["IMG"])
    assert transform(item, CATEGORIES, {"A_VAR": 2}) == transform(item, CATEGORIES, {"A_VAR": 2})


def test_document_uses_storefront_field_names():
    doc = transform(make_item("A", amount=1999, category_id="CAT_RICE"), CATEGORIES, {}).to_document()
    assert doc["price"] == 19.99
    assert doc["categoryId"] == "CAT_RICE"
    assert doc["stockStatus"] == "IN_STOCK"
    assert doc["isVisible"] is True
    assert doc["lastSyncedAt"] is None


def test_transform_category_assigns_style():
    category = transform_category(make_category("CAT_SPICES", "Spices & Masala"))
    assert category.name == "Spices & Masala"
    assert category.emoji == "🌶️"
    assert category.product_count == 0


def test_unknown_category_gets_default_style():
    assert category_style("Hardware") == ("🛒", "from-lime-500 to-green-600")


def test_count_products_groups_by_normalized_name():
    products = [
        transform(make_item("A"), [], {}),
        transform(make_item("B"), [], {}),
    ]
    products[1].category = " uncategorized "
    assert count_products_by_category(products) == {"uncategorized": 2}
    assert normalize_category_name("  Spices ") == "spices"

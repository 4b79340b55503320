"""
Storefront read endpoints.

Every read is also an inbound trigger for `maybe_sync()`: the debounce keeps
this cheap, and a failed upstream fetch never breaks the read, the last
stored documents are served instead.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import RedirectResponse

from catalog_sync.errors import CatalogFetchError
from catalog_sync.integrations.contracts.interfaces import CatalogClient, StoreAdapter
from catalog_sync.sync.images import HttpImageProbe, build_image_candidates, resolve_first_available
from catalog_sync.sync.service import SyncService
from catalog_sync.utils.config_loader import StoreConfig, TransformSettings

logger = logging.getLogger(__name__)

router = APIRouter()


# Will be set by main.py after import
store: StoreAdapter = None
sync_service: SyncService = None
catalog_client: CatalogClient = None
store_config: StoreConfig = StoreConfig()
transform_settings: TransformSettings = TransformSettings()
image_probe = HttpImageProbe()


async def _trigger_sync() -> None:
    if sync_service is None:
        return
    try:
        outcome = await sync_service.maybe_sync()
    except CatalogFetchError as e:
        logger.warning("Catalog sync failed, serving stored data: %s", e)
        return
    if outcome.ran:
        logger.info("Catalog synced on read: %s", outcome.to_dict().get("message"))


def _matches_category(doc: Dict[str, Any], category: Optional[str]) -> bool:
    if not category:
        return True
    wanted = category.strip().casefold()
    return wanted in (str(doc.get("category", "")).casefold(), str(doc.get("categoryId", "")).casefold())


@router.get("/products", tags=["Products"])
async def list_products(
    category: Optional[str] = Query(default=None),
    in_stock: bool = Query(default=False),
):
    await _trigger_sync()
    docs = await store.get_all(store_config.products_collection)
    products: List[Dict[str, Any]] = [
        d for d in docs
        if d.get("isVisible", True)
        and _matches_category(d, category)
        and (not in_stock or int(d.get("stock") or 0) > 0)
    ]
    products.sort(key=lambda d: str(d.get("name", "")).casefold())
    return {"success": True, "count": len(products), "products": products}


@router.get("/products/{product_id}", tags=["Products"])
async def get_product(product_id: str):
    await _trigger_sync()
    doc = await store.get(store_config.products_collection, product_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": True, "product": doc}


@router.get("/categories", tags=["Products"])
async def list_categories():
    await _trigger_sync()
    docs = await store.get_all(store_config.categories_collection)
    docs.sort(key=lambda d: str(d.get("name", "")).casefold())
    return {"success": True, "count": len(docs), "categories": docs}


@router.get("/images/resolve", tags=["Images"])
async def resolve_image(url: str = Query(default=""), name: str = Query(default="")):
    candidates = build_image_candidates(url, placeholder=transform_settings.placeholder_image)
    resolved = await resolve_first_available(candidates, image_probe)
    return {
        "success": True,
        "name": name,
        "url": resolved,
        "is_placeholder": resolved == transform_settings.placeholder_image,
        "candidates": [c.url for c in candidates],
    }


@router.get("/images/{image_id}", tags=["Images"])
async def image_redirect(image_id: str):
    """Redirect a catalog image id to its hosted URL, or the placeholder."""
    image = None
    if catalog_client is not None:
        try:
            image = await catalog_client.get_image(image_id)
        except Exception as e:
            logger.warning("Image lookup failed for %s: %s", image_id, e)
    target = (image or {}).get("url") or transform_settings.placeholder_image
    return RedirectResponse(url=target, status_code=307)

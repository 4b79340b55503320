"""
Square Catalog HTTP Client.

Purpose:
- Fetches catalog items, categories and inventory counts from the Square REST API
- Returns raw objects shaped per catalog_sync/integrations/contracts/catalog.py

Implementation notes:
- httpx.AsyncClient with a per-request timeout
- Cursor pagination on /catalog/search and /inventory/counts/batch-retrieve
- Retries transport errors, 429 and 5xx with exponential backoff; other 4xx raise
- Requests pass through a sliding-window rate limiter

Important:
- This client is the ONLY place that talks to Square for catalog data.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from catalog_sync.integrations.contracts.catalog import aggregate_inventory
from catalog_sync.integrations.contracts.interfaces import CatalogClient
from catalog_sync.utils.config_loader import CatalogConfig
from catalog_sync.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

BASE_URLS = {
    "production": "https://connect.squareup.com/v2",
    "sandbox": "https://connect.squareupsandbox.com/v2",
}

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class SquareCatalogClient(CatalogClient):
    def __init__(
        self,
        access_token: Optional[str] = None,
        location_id: Optional[str] = None,
        environment: Optional[str] = None,
        config: Optional[CatalogConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config or CatalogConfig()
        self.access_token = access_token or os.getenv("SQUARE_ACCESS_TOKEN", "")
        self.location_id = location_id or os.getenv("SQUARE_LOCATION_ID", "")
        self.environment = (environment or os.getenv("SQUARE_ENVIRONMENT") or self.config.environment).lower()
        if self.environment not in BASE_URLS:
            raise ValueError(f"Unknown Square environment '{self.environment}'")
        self.base_url = BASE_URLS[self.environment]
        self.rate_limiter = rate_limiter or RateLimiter(self.config.requests_per_minute)
        self._transport = transport
        self._sleep = sleep

        if not self.access_token:
            logger.warning("SQUARE_ACCESS_TOKEN is not set; catalog requests will fail.")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Square-Version": self.config.api_version,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.config.timeout_seconds,
            headers=self._headers(),
            transport=self._transport,
        )

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not self.access_token:
            raise ValueError("SQUARE_ACCESS_TOKEN is not configured.")

        attempt = 0
        while True:
            await self.rate_limiter.wait_if_needed()
            delay = self.config.backoff_seconds * (2 ** attempt)
            try:
                response = await client.request(method, path, json=json)
            except httpx.RequestError as e:
                logger.warning(f"Request error calling Square {path} (attempt {attempt + 1}): {e}")
                last_error = e
            else:
                if response.status_code in _RETRYABLE_STATUS:
                    logger.warning(f"Square {path} returned {response.status_code} (attempt {attempt + 1})")
                    last_error = httpx.HTTPStatusError(
                        f"Square API error {response.status_code}", request=response.request, response=response
                    )
                    retry_after = response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        delay = max(delay, float(retry_after))
                else:
                    try:
                        response.raise_for_status()
                    except httpx.HTTPStatusError as e:
                        logger.error(f"HTTP error from Square API: {e.response.status_code} {e.response.text}")
                        raise
                    return response.json() if response.content else {}

            if attempt >= self.config.max_retries:
                raise last_error
            await self._sleep(delay)
            attempt += 1

    async def _search(self, client: httpx.AsyncClient, object_type: str) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        objects: List[Dict[str, Any]] = []
        related: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        while True:
            body: Dict[str, Any] = {
                "object_types": [object_type],
                "include_deleted_objects": False,
                "include_related_objects": True,
                "limit": self.config.page_limit,
            }
            if cursor:
                body["cursor"] = cursor
            data = await self._request(client, "POST", "/catalog/search", json=body)
            objects.extend(data.get("objects") or [])
            related.extend(data.get("related_objects") or [])
            cursor = data.get("cursor")
            if not cursor:
                break
        return objects, related

    # ------------------------------------------------------------------ #
    # CatalogClient
    # ------------------------------------------------------------------ #
    async def get_catalog_items(self) -> List[Dict[str, Any]]:
        async with self._client() as client:
            objects, _related = await self._search(client, "ITEM")

        items = [o for o in objects if o.get("type") == "ITEM" and not o.get("is_deleted")]
        logger.info("Fetched %d catalog items from Square", len(items))
        return items

    async def get_categories(self) -> List[Dict[str, Any]]:
        async with self._client() as client:
            objects, related = await self._search(client, "CATEGORY")

        # Only this search decides the category set; item-search related objects are not merged in.
        merged: Dict[str, Dict[str, Any]] = {}
        for obj in [*related, *objects]:
            if obj.get("type") == "CATEGORY" and obj.get("id") and not obj.get("is_deleted"):
                merged[obj["id"]] = obj
        logger.info("Fetched %d categories from Square", len(merged))
        return list(merged.values())

    async def get_inventory_counts(self) -> Dict[str, int]:
        counts: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        async with self._client() as client:
            while True:
                body: Dict[str, Any] = {}
                if self.location_id:
                    body["location_ids"] = [self.location_id]
                if cursor:
                    body["cursor"] = cursor
                data = await self._request(client, "POST", "/inventory/counts/batch-retrieve", json=body)
                counts.extend(data.get("counts") or [])
                cursor = data.get("cursor")
                if not cursor:
                    break
        inventory = aggregate_inventory(counts)
        logger.info("Fetched inventory for %d catalog objects", len(inventory))
        return inventory

    async def get_image(self, image_id: str) -> Optional[Dict[str, Any]]:
        async with self._client() as client:
            try:
                data = await self._request(client, "GET", f"/catalog/object/{image_id}")
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    return None
                raise
        obj = data.get("object") or {}
        if obj.get("type") != "IMAGE":
            return None
        image_data = obj.get("image_data") or {}
        return {
            "id": image_id,
            "url": image_data.get("url"),
            "caption": image_data.get("caption") or "",
            "name": image_data.get("name") or "",
        }
